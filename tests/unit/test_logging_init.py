from __future__ import annotations

import logging
from io import StringIO

from resultease.logging.init import (
    SUMMARY_LEVEL,
    LabeledFormatter,
    enable_debug,
    get_logger,
    log_summary,
    reset_logging,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter():
    """setup_logging configures the package logger with one labeled stdout handler."""
    logger = setup_logging()

    assert logger.name == "resultease"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_is_idempotent():
    first = setup_logging()
    second = setup_logging(debug=True)
    assert first is second
    assert len(second.handlers) == 1
    assert get_logger() is first


def test_labeled_prefixes():
    """Every level renders as ``LABEL message``."""
    captured = StringIO()
    logger = logging.getLogger("resultease_test_labels")
    logger.setLevel(logging.DEBUG)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    handler = logging.StreamHandler(captured)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    logger.debug("d")
    logger.info("i")
    logger.warning("w")
    logger.error("e")
    logger.log(SUMMARY_LEVEL, "s")

    assert captured.getvalue().strip().split("\n") == ["DEBUG d", "INFO i", "WARN w", "ERROR e", "SUMMARY s"]


def test_module_loggers_share_the_package_handler(capsys):
    setup_logging()
    logging.getLogger("resultease.services.pipeline").info("from a module")
    assert "INFO from a module" in capsys.readouterr().out


def test_enable_debug_and_summary(capsys):
    setup_logging()
    get_logger().debug("hidden")
    enable_debug()
    get_logger().debug("shown")
    log_summary("files=1/1")
    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "DEBUG shown" in out
    assert out.strip().splitlines()[-1] == "SUMMARY files=1/1"


def test_reset_logging_drops_handlers():
    logger = setup_logging()
    reset_logging()
    assert logger.handlers == []
    assert setup_logging().handlers
