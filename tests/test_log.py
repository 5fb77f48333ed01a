"""
Tests for structured logging setup.
"""
import subprocess
import sys
from pathlib import Path
from structlog.testing import capture_logs
from app.log import get_logger, setup_logging


class TestLogging:
    def test_module_logger_emits_named_event(self):
        logger = get_logger("services.example")

        with capture_logs() as logs:
            logger.info("impact_published", impact_id="impact_1")

        assert logs == [{
            "event": "impact_published",
            "impact_id": "impact_1",
            "logger_name": "services.example",
            "log_level": "info",
        }]

    def test_setup_logging_then_log(self):
        setup_logging(level="DEBUG", json_output=True)
        logger = get_logger("services.example")

        with capture_logs() as logs:
            logger.warning("trust_check_failed", club_id="club_123")

        assert logs[0]["event"] == "trust_check_failed"
        assert logs[0]["logger_name"] == "services.example"


class TestModuleLayout:
    def test_app_directory_does_not_shadow_stdlib_logging(self):
        """Running a script from inside app/ must still import the standard logging module."""
        app_dir = Path(__file__).resolve().parent.parent / "app"

        result = subprocess.run(
            [sys.executable, "-c", "import logging; print(logging.NOTSET)"],
            cwd=app_dir,
            capture_output=True,
            text=True,
        )

        assert result.returncode == 0, result.stderr
        assert result.stdout.strip() == "0"
