"""Console and file logging for churn scrape runs.

The console shows warnings plus a short list of headline lines per logger
(detected candidates, captured members, navigation). Everything at DEBUG and
above goes to a rotating ``scrape.log``.
"""
import logging
import logging.handlers
import sys
from pathlib import Path

RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1m\033[31m",
}

CLI_LOGGER = "scrape_churn_members"
LOG_FILE_NAME = "scrape.log"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 5
NOISY_LOGGERS = ("selenium", "urllib3")


class LevelColorFormatter(logging.Formatter):
    """Wrap each console line in its level's ANSI color."""

    def __init__(self, fmt=None, datefmt=None, use_color=True):
        super().__init__(fmt, datefmt)
        self.use_color = use_color

    def format(self, record):
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno) if self.use_color else None
        return f"{color}{message}{RESET}" if color else message


class ConsoleFilter(logging.Filter):
    """Pass warnings, plus INFO headlines from the loggers that own them."""

    # Logger name prefix -> INFO substrings shown on the console. None shows every INFO line.
    HEADLINES = {
        "roster_churn.roster.pipeline": (
            "CANDIDATE",
            "CAPTURED",
            "✓ ",
            "No churning members",
            "COMPLETE",
            "===",
            "Starting scrape",
        ),
        "roster_churn.roster.detector": ("scan produced",),
        "roster_churn.roster.selenium_worker": ("VISITING",),
        CLI_LOGGER: None,
    }

    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        if record.levelno != logging.INFO:
            return False

        for prefix, markers in self.HEADLINES.items():
            if record.name == prefix or record.name.startswith(prefix + "."):
                if markers is None:
                    return True
                message = record.getMessage()
                return any(marker in message for marker in markers)
        return False


def _stream_is_terminal(stream) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def setup_scrape_logging(
    console_level=logging.INFO,
    file_level=logging.DEBUG,
    quiet=False,
    log_dir=Path("logs"),
    use_color=None,
):
    """Route the root logger to a filtered console handler and a rotating file.

    ``use_color=None`` colors the console only when stderr is a terminal.
    Returns the path of the log file.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if not quiet:
        stream = sys.stderr
        if use_color is None:
            use_color = _stream_is_terminal(stream)
        console_handler = logging.StreamHandler(stream)
        console_handler.setLevel(console_level)
        console_handler.setFormatter(LevelColorFormatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
            use_color=use_color,
        ))
        console_handler.addFilter(ConsoleFilter())
        root_logger.addHandler(console_handler)

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME
    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8"
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(threadName)s %(name)s:%(lineno)d: %(message)s"
    ))
    root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug("Logging to %s (console %s)", log_path, "off" if quiet else "on")
    return log_path
