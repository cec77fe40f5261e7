"""Tests for the command-line entry point."""

import logging
import signal
import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

import linkwatch
from linkwatch import _attach_log_file, _handle_shutdown, main


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        f"""log_file: {tmp_path / "monitor.log"}
check_interval_seconds: 60
max_retries: 1
failure_threshold: 3
ping_target: "https://example.com, https://example.org"
retry_delay_seconds: 0
"""
    )
    return path


class TestCheckCommand:
    """Tests for the single-round check command."""

    @patch("linkwatch.checker.requests.get")
    def test_reachable_exits_zero(
        self, mock_get: MagicMock, config_file: Path, capsys: pytest.CaptureFixture
    ) -> None:
        mock_get.return_value = MagicMock(status_code=200)

        main(["check", "-c", str(config_file)])

        out = capsys.readouterr().out
        assert "UP:   https://example.com" in out
        assert "Result: internet reachable (2/2 targets up)" in out

    @patch("linkwatch.checker.requests.get")
    def test_unreachable_exits_one(
        self, mock_get: MagicMock, config_file: Path, capsys: pytest.CaptureFixture
    ) -> None:
        mock_get.side_effect = requests.ConnectionError("no route to host")

        with pytest.raises(SystemExit) as exc_info:
            main(["check", "-c", str(config_file)])

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "DOWN: https://example.org (attempts: 2) - request error: no route to host" in out
        assert "Result: internet unreachable (0/2 targets up)" in out

    def test_config_error(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["check", "-c", str(tmp_path / "missing.yaml")])

        assert exc_info.value.code == 1
        assert "Error: Configuration file not found" in capsys.readouterr().out


class TestDefaultCommand:
    """Options given without a subcommand apply to the default run command."""

    def test_bare_options_run_monitor(self, tmp_path: Path) -> None:
        missing = str(tmp_path / "missing.yaml")
        with patch("linkwatch._cmd_run") as mock_run:
            main(["-v", "-c", missing])

        args = mock_run.call_args.args[0]
        assert args.config == missing
        assert args.verbose is True

    def test_bare_invocation_uses_defaults(self) -> None:
        with patch("linkwatch._cmd_run") as mock_run:
            main([])

        args = mock_run.call_args.args[0]
        assert args.config == "config.yaml"
        assert args.verbose is False

    def test_options_before_subcommand_are_kept(self, tmp_path: Path) -> None:
        custom = str(tmp_path / "custom.yaml")
        with patch("linkwatch._cmd_check") as mock_check:
            main(["-c", custom, "check"])

        assert mock_check.call_args.args[0].config == custom

    def test_options_after_subcommand(self, tmp_path: Path) -> None:
        custom = str(tmp_path / "custom.yaml")
        with patch("linkwatch._cmd_run") as mock_run:
            main(["run", "-c", custom, "-v"])

        args = mock_run.call_args.args[0]
        assert args.config == custom
        assert args.verbose is True


class TestRunCommand:
    """Startup failures abort before the loop starts."""

    def test_config_error_is_fatal(self, tmp_path: Path) -> None:
        with patch("linkwatch.scheduler.Scheduler") as mock_scheduler:
            with pytest.raises(SystemExit) as exc_info:
                main(["run", "-c", str(tmp_path / "missing.yaml")])

        assert exc_info.value.code == 1
        mock_scheduler.assert_not_called()

    def test_unwritable_log_file_is_fatal(self, tmp_path: Path, config_file: Path) -> None:
        """A log destination that cannot be opened aborts startup."""
        config_file.write_text(
            config_file.read_text().replace(str(tmp_path / "monitor.log"), str(tmp_path / "no" / "such" / "dir.log"))
        )

        with patch("linkwatch.scheduler.Scheduler") as mock_scheduler:
            with pytest.raises(SystemExit) as exc_info:
                main(["run", "-c", str(config_file)])

        assert exc_info.value.code == 1
        mock_scheduler.assert_not_called()

    def test_run_stops_scheduler_on_shutdown(self, config_file: Path) -> None:
        """Once the shutdown event fires, the scheduler is stopped."""
        scheduler = MagicMock()

        def start(stop_event: threading.Event) -> None:
            stop_event.set()

        scheduler.start.side_effect = start

        root = logging.getLogger()
        handlers_before = list(root.handlers)
        try:
            with (
                patch("linkwatch.scheduler.Scheduler", return_value=scheduler),
                patch("linkwatch.signal.signal"),
            ):
                main(["run", "-c", str(config_file)])
        finally:
            for handler in root.handlers[:]:
                if handler not in handlers_before:
                    root.removeHandler(handler)
                    handler.close()

        scheduler.start.assert_called_once()
        scheduler.stop.assert_called_once()


class TestLogging:
    """Tests for the durable log destination."""

    def test_attach_log_file_appends(self, tmp_path: Path) -> None:
        log_path = tmp_path / "monitor.log"
        log_path.write_text("previous line\n")
        root = logging.getLogger()
        previous_level = root.level
        root.setLevel(logging.INFO)

        handler = _attach_log_file(str(log_path))
        try:
            logging.getLogger("linkwatch.test").info("Internet appeared at 2024-05-01 12:00:00")
        finally:
            root.removeHandler(handler)
            handler.close()
            root.setLevel(previous_level)

        content = log_path.read_text()
        assert content.startswith("previous line\n")
        assert "[INFO] linkwatch.test: Internet appeared at 2024-05-01 12:00:00" in content

    def test_attach_log_file_raises_for_missing_dir(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            _attach_log_file(str(tmp_path / "missing" / "monitor.log"))


def test_signal_handler_sets_shutdown_event(monkeypatch: pytest.MonkeyPatch) -> None:
    event = threading.Event()
    monkeypatch.setattr(linkwatch, "_shutdown_event", event)

    _handle_shutdown(signal.SIGINT, None)

    assert event.is_set()


def test_version(capsys: pytest.CaptureFixture) -> None:
    with pytest.raises(SystemExit):
        main(["--version"])
    assert f"linkwatch {linkwatch.__version__}" in capsys.readouterr().out
