from __future__ import annotations

from rich.text import Text

from ccline_usage.models import SegmentOutput


def render_plain(output: SegmentOutput) -> str:
    icon = output.metadata.get("dynamic_icon", "")
    return f"{icon} {output.primary} {output.secondary}".strip()


def render_text(output: SegmentOutput) -> Text:
    style = usage_style(_five_hour_percent(output))
    text = Text()
    icon = output.metadata.get("dynamic_icon")
    if icon:
        text.append(icon, style=style)
        text.append(" ")
    text.append(output.primary, style=f"bold {style}")
    text.append(" ")
    text.append(output.secondary, style="bright_black")
    return text


def render_tmux(output: SegmentOutput) -> str:
    color = usage_style(_five_hour_percent(output))
    parts = []
    icon = output.metadata.get("dynamic_icon")
    if icon:
        parts.append(_style_text(icon, color))
    parts.append(_style_text(output.primary, color))
    parts.append(output.secondary)
    return " ".join(parts)


def usage_style(percent: float) -> str:
    if percent >= 99:
        return "red"
    if percent > 80:
        return "yellow"
    return "cyan"


def _five_hour_percent(output: SegmentOutput) -> float:
    try:
        percent = float(output.metadata.get("five_hour_utilization", "0"))
    except ValueError:
        return 0.0
    return max(0.0, min(100.0, percent))


def _style_text(text: str, color: str) -> str:
    return f"#[fg={color}]{text}#[default]"
