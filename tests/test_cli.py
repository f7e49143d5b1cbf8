import json

import pytest

from ccline_usage import cli
from ccline_usage.models import SegmentOutput

OUTPUT = SegmentOutput(
    primary="42%",
    secondary="· 3-10-15",
    metadata={
        "dynamic_icon": "I",
        "five_hour_utilization": "42",
        "seven_day_utilization": "10",
        "reset_period": "session",
        "reset_format": "time",
    },
)


@pytest.fixture(autouse=True)
def _plain_console(monkeypatch) -> None:
    for name in ("FORCE_COLOR", "TTY_COMPATIBLE", "TTY_INTERACTIVE"):
        monkeypatch.delenv(name, raising=False)


class _FakeSegment:
    result: SegmentOutput | None = OUTPUT
    options: dict | None = None

    def __init__(self, options_provider) -> None:
        type(self).options = options_provider()

    def collect(self) -> SegmentOutput | None:
        return self.result


def test_main_prints_plain_segment(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "UsageSegment", _FakeSegment)

    assert cli.main([]) == 0

    assert capsys.readouterr().out == "I 42% · 3-10-15"


def test_main_tmux_outputs_status(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "UsageSegment", _FakeSegment)

    assert cli.main(["--tmux"]) == 0

    assert capsys.readouterr().out == "#[fg=cyan]I#[default] #[fg=cyan]42%#[default] · 3-10-15"


def test_main_json_output(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "UsageSegment", _FakeSegment)

    assert cli.main(["--json"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["primary"] == "42%"
    assert payload["secondary"] == "· 3-10-15"
    assert payload["metadata"]["reset_format"] == "time"


def test_main_returns_one_without_data(monkeypatch, capsys) -> None:
    monkeypatch.setattr(_FakeSegment, "result", None)
    monkeypatch.setattr(cli, "UsageSegment", _FakeSegment)

    assert cli.main([]) == 1

    assert capsys.readouterr().out == ""


def test_main_warns_about_invalid_options(monkeypatch, capsys) -> None:
    metadata = dict(OUTPUT.metadata, invalid_reset_period="monthly")
    output = SegmentOutput(primary="42%", secondary="· 3-10-15", metadata=metadata)
    monkeypatch.setattr(_FakeSegment, "result", output)
    monkeypatch.setattr(cli, "UsageSegment", _FakeSegment)

    assert cli.main([]) == 0

    captured = capsys.readouterr()
    assert "Invalid reset_period 'monthly'; using 'session'" in captured.err
    assert captured.out == "I 42% · 3-10-15"


def test_main_reads_config_path(monkeypatch, tmp_path) -> None:
    config = tmp_path / "config.toml"
    config.write_text('[[segments]]\nid = "usage"\n[segments.options]\ntimeout = 9\n')
    monkeypatch.setattr(cli, "UsageSegment", _FakeSegment)

    assert cli.main(["--config", str(config)]) == 0

    assert _FakeSegment.options == {"timeout": 9}
