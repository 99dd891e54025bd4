"""Unit tests for logging utilities.

Tests console filtering of pipeline headlines and logging setup.
"""
from __future__ import annotations

import logging
import logging.handlers

import pytest

from roster_churn.logging_utils import ConsoleFilter, LevelColorFormatter, setup_scrape_logging


def _record(name: str, level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger()
    saved_handlers = root_logger.handlers[:]
    saved_level = root_logger.level
    yield root_logger
    for handler in root_logger.handlers[:]:
        if handler not in saved_handlers:
            root_logger.removeHandler(handler)
            if isinstance(handler, logging.handlers.RotatingFileHandler):
                handler.close()
    for handler in saved_handlers:
        if handler not in root_logger.handlers:
            root_logger.addHandler(handler)
    root_logger.setLevel(saved_level)


# ==============================================================================
# ConsoleFilter Tests
# ==============================================================================

@pytest.mark.unit
@pytest.mark.parametrize("level", [logging.WARNING, logging.ERROR, logging.CRITICAL])
def test_console_filter_allows_warnings_and_above(level):
    assert ConsoleFilter().filter(_record("anything", level, "message")) is True


@pytest.mark.unit
def test_console_filter_allows_candidate_lines():
    record = _record(
        "roster_churn.roster.pipeline",
        logging.INFO,
        "    1. CANDIDATE @jane-doe (Jane Doe) - trial-declined, 5 days",
    )

    assert ConsoleFilter().filter(record) is True


@pytest.mark.unit
def test_console_filter_allows_capture_summary():
    record = _record(
        "roster_churn.roster.pipeline",
        logging.INFO,
        "✅ CAPTURED 3 churning members from growth-lab (0 without detail)",
    )

    assert ConsoleFilter().filter(record) is True


@pytest.mark.unit
def test_console_filter_allows_member_summary_lines():
    record = _record(
        "roster_churn.roster.pipeline",
        logging.INFO,
        "  ✓ Jane Doe (@jane-doe) trial-declined, 5 days, jane@x.com, $49/month",
    )

    assert ConsoleFilter().filter(record) is True


@pytest.mark.unit
def test_console_filter_allows_navigation_headers():
    record = _record(
        "roster_churn.roster.selenium_worker",
        logging.INFO,
        "VISITING members page https://www.skool.com/x/-/members",
    )

    assert ConsoleFilter().filter(record) is True


@pytest.mark.unit
def test_console_filter_allows_cli_messages():
    record = _record("scrape_churn_members", logging.INFO, "Results saved to output/x")

    assert ConsoleFilter().filter(record) is True


@pytest.mark.unit
def test_console_filter_blocks_random_info():
    record = _record("roster_churn.roster.loader", logging.INFO, "Some routine progress")

    assert ConsoleFilter().filter(record) is False


@pytest.mark.unit
def test_console_filter_blocks_markers_outside_pipeline():
    record = _record("some.library", logging.INFO, "CAPTURED everything")

    assert ConsoleFilter().filter(record) is False


@pytest.mark.unit
def test_console_filter_blocks_debug():
    record = _record("roster_churn.roster.pipeline", logging.DEBUG, "=== CANDIDATE ===")

    assert ConsoleFilter().filter(record) is False


# ==============================================================================
# setup_scrape_logging() Tests
# ==============================================================================

@pytest.mark.unit
def test_setup_scrape_logging_quiet_mode(tmp_path, restore_root_logger):
    """Quiet mode keeps only the rotating file handler."""
    setup_scrape_logging(quiet=True, log_dir=tmp_path)

    handlers = restore_root_logger.handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.handlers.RotatingFileHandler)
    assert (tmp_path / "scrape.log").exists()


@pytest.mark.unit
def test_setup_scrape_logging_console_and_file(tmp_path, restore_root_logger):
    setup_scrape_logging(console_level=logging.INFO, file_level=logging.DEBUG, log_dir=tmp_path / "logs")

    handlers = restore_root_logger.handlers
    assert len(handlers) == 2
    console = [h for h in handlers if not isinstance(h, logging.handlers.RotatingFileHandler)]
    assert len(console) == 1
    assert console[0].level == logging.INFO
    assert any(isinstance(f, ConsoleFilter) for f in console[0].filters)
    assert (tmp_path / "logs" / "scrape.log").exists()


@pytest.mark.unit
def test_setup_scrape_logging_suppresses_noisy_loggers(tmp_path, restore_root_logger):
    setup_scrape_logging(quiet=True, log_dir=tmp_path)

    assert logging.getLogger("selenium").level == logging.WARNING
    assert logging.getLogger("urllib3").level == logging.WARNING


@pytest.mark.unit
def test_setup_scrape_logging_returns_log_path(tmp_path, restore_root_logger):
    log_path = setup_scrape_logging(quiet=True, log_dir=tmp_path)

    assert log_path == tmp_path / "scrape.log"
    logging.getLogger("roster_churn.roster.loader").debug("routine detail")
    for handler in restore_root_logger.handlers:
        handler.flush()
    assert "routine detail" in log_path.read_text(encoding="utf-8")


@pytest.mark.unit
@pytest.mark.parametrize("use_color", [True, False])
def test_setup_scrape_logging_color_toggle(tmp_path, restore_root_logger, use_color):
    setup_scrape_logging(log_dir=tmp_path, use_color=use_color)

    console = [
        h for h in restore_root_logger.handlers if not isinstance(h, logging.handlers.RotatingFileHandler)
    ][0]
    assert isinstance(console.formatter, LevelColorFormatter)
    assert console.formatter.use_color is use_color


# ==============================================================================
# Per-logger headline routing
# ==============================================================================

@pytest.mark.unit
def test_console_filter_markers_are_scoped_to_their_logger():
    """Navigation headers only count when the browser worker logs them."""
    record = _record("roster_churn.roster.pipeline", logging.INFO, "VISITING something")

    assert ConsoleFilter().filter(record) is False


@pytest.mark.unit
def test_console_filter_allows_detector_scan_summary():
    record = _record("roster_churn.roster.detector", logging.INFO, "signal-first scan produced 2 unique candidates")

    assert ConsoleFilter().filter(record) is True


@pytest.mark.unit
def test_console_filter_does_not_match_logger_name_prefixes_loosely():
    record = _record("scrape_churn_members_extra", logging.INFO, "anything")

    assert ConsoleFilter().filter(record) is False


@pytest.mark.unit
def test_level_color_formatter():
    record = _record("x", logging.WARNING, "careful")

    colored = LevelColorFormatter("%(message)s").format(record)
    plain = LevelColorFormatter("%(message)s", use_color=False).format(record)

    assert colored.startswith("\033[33m") and colored.endswith("\033[0m")
    assert plain == "careful"
