"""Tests for logging configuration."""

import logging

from rich.logging import RichHandler

from commit_insight.logging_config import get_logger, setup_logging


def _handlers(logger, kind):
    return [h for h in logger.handlers if isinstance(h, kind)]


class TestSetupLogging:
    def test_levels(self):
        """Verbose and quiet select DEBUG and ERROR; WARNING otherwise."""
        assert setup_logging(verbose=True).level == logging.DEBUG
        assert setup_logging(quiet=True).level == logging.ERROR
        assert setup_logging().level == logging.WARNING

    def test_verbosity_overrides_flags(self):
        """A configured verbosity wins over the boolean flags."""
        assert setup_logging(verbose=True, verbosity="quiet").level == logging.ERROR

    def test_repeated_setup_replaces_handlers(self):
        """Configuring twice leaves a single console handler."""
        setup_logging()
        logger = setup_logging(verbose=True)
        assert len(_handlers(logger, RichHandler)) == 1
        assert logger.propagate is False

    def test_console_does_not_interpret_markup(self):
        """Messages such as git's '[rejected]' are printed as-is."""
        (handler,) = _handlers(setup_logging(), RichHandler)
        assert handler.markup is False

    def test_log_file_receives_info_when_quiet(self, tmp_path):
        """The log file gets scan progress even when the terminal only shows errors."""
        path = tmp_path / "logs" / "insight.log"
        logger = setup_logging(quiet=True, log_file=str(path))
        (console,) = _handlers(logger, RichHandler)
        assert console.level == logging.ERROR

        get_logger("scan.orchestrator").info("Scanned project: 3 commits")
        get_logger("scan.orchestrator").debug("not written")
        for handler in logger.handlers:
            handler.flush()

        text = path.read_text()
        assert "commit_insight.scan.orchestrator - INFO - Scanned project: 3 commits" in text
        assert "not written" not in text


class TestGetLogger:
    def test_module_loggers_are_namespaced(self):
        """Loggers live under the commit_insight namespace."""
        assert get_logger("git.walker").name == "commit_insight.git.walker"
        assert get_logger("commit_insight.api").name == "commit_insight.api"
        assert get_logger().name == "commit_insight"
