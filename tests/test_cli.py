"""Tests for the command-line entry point."""

import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from uptimer import __version__, _build_parser, main


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    """Keep the CLI from replacing pytest's log handlers, and isolate env overrides."""
    for name in ("UPTIMER_ENDPOINTS_FILE", "UPTIMER_DASHBOARD_PORT", "UPTIMER_DASHBOARD_ENABLED"):
        monkeypatch.delenv(name, raising=False)
    with patch("uptimer._setup_logging"):
        yield


def _set_event() -> threading.Event:
    event = threading.Event()
    event.set()
    return event


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self) -> None:
        args = _build_parser().parse_args([])

        assert args.file is None
        assert args.config is None
        assert args.show_ok is False
        assert args.show_rt is False
        assert args.sound_alert is False
        assert args.dashboard_port is None
        assert args.no_window is False
        assert args.verbose is False

    def test_short_flags(self) -> None:
        args = _build_parser().parse_args(["-so", "-rt", "-sa", "-dp", "8080", "-nw", "-f", "sites.txt"])

        assert args.show_ok is True
        assert args.show_rt is True
        assert args.sound_alert is True
        assert args.dashboard_port == 8080
        assert args.no_window is True
        assert args.file == "sites.txt"

    def test_long_flags(self) -> None:
        args = _build_parser().parse_args(["--show-ok", "--show-rt", "--dashboard-port", "9000", "--no-color"])

        assert args.show_ok is True
        assert args.show_rt is True
        assert args.dashboard_port == 9000
        assert args.no_color is True

    def test_rejects_non_numeric_port(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["-dp", "eighty"])

    def test_version(self, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit) as exc_info:
            _build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestMain:
    """Tests for main()."""

    def test_no_window_requires_dashboard_port(self, tmp_path: Path) -> None:
        endpoints = tmp_path / "endpoints.txt"
        endpoints.write_text("10\nhttps://example.com\n")

        with pytest.raises(SystemExit) as exc_info:
            main(["-nw", "-f", str(endpoints), "--no-color"])

        assert exc_info.value.code == 1

    def test_missing_endpoint_file_is_created(self, tmp_path: Path) -> None:
        endpoints = tmp_path / "endpoints.txt"

        with pytest.raises(SystemExit) as exc_info:
            main(["-f", str(endpoints), "--no-color"])

        assert exc_info.value.code == 1
        assert endpoints.exists()

    def test_missing_config_file(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["-c", str(tmp_path / "missing.yaml"), "--no-color"])

        assert exc_info.value.code == 1

    def test_runs_until_shutdown_and_prints_summary(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """A run that is signalled immediately still prints the summary and exits 0."""
        endpoints = tmp_path / "endpoints.txt"
        endpoints.write_text("10\nhttp://example.com\nhttp://example.org/health 204\n")

        response = MagicMock()
        response.status = 200
        response.__enter__ = MagicMock(return_value=response)
        response.__exit__ = MagicMock(return_value=False)

        with (
            patch("uptimer.Event", side_effect=_set_event),
            patch("uptimer.signal.signal"),
            patch("uptimer.checker._opener.open", return_value=response),
            pytest.raises(SystemExit) as exc_info,
        ):
            main(["-f", str(endpoints), "--no-color"])

        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "========== SHUTDOWN SUMMARY ==========" in out
        assert "http://example.com" in out
        assert "http://example.org/health" in out
        assert "Total uptime:" in out

    def test_dashboard_port_conflict_continues(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """A dashboard that cannot bind does not stop monitoring."""
        from uptimer.api import ApiError

        endpoints = tmp_path / "endpoints.txt"
        endpoints.write_text("10\nhttp://example.com\n")

        with (
            patch("uptimer.Event", side_effect=_set_event),
            patch("uptimer.signal.signal"),
            patch("uptimer.checker._opener.open", side_effect=TimeoutError()),
            patch("uptimer.api.ApiServer.start", side_effect=ApiError("Port 8080 is already in use.")),
            pytest.raises(SystemExit) as exc_info,
        ):
            main(["-f", str(endpoints), "-dp", "8080", "--no-color"])

        assert exc_info.value.code == 0
        assert "SHUTDOWN SUMMARY" in capsys.readouterr().out
