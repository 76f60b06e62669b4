"""Logging setup for perftrack.

Console output goes through Rich on stderr. A rotating log file is added
when one is requested, or under ``paths.log_dir`` whenever ``--debug`` is
on. Every handler carries :class:`RedactingFilter`, so API keys never reach
the terminal or the file.

Example:
    >>> from perftrack.utils.logging import log_timing, setup_logging
    >>> setup_logging("DEBUG", log_file=Path("~/.perftrack/logs/perftrack.log"))
    >>> with log_timing(logger, "Generating report"):
    ...     ...
    # Logs: "Generating report done in 2.31s"
"""

from __future__ import annotations

import logging
import logging.handlers
import re
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "perftrack"
LOG_FILE_NAME = "perftrack.log"

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = (
    "google",
    "google.genai",
    "google_genai",
    "urllib3",
    "requests",
    "httpx",
    "httpcore",
    "keyring",
    "asyncio",
)

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
FILE_MAX_BYTES = 1_000_000
FILE_BACKUPS = 3


class RedactingFilter(logging.Filter):
    """Replaces things that look like API keys or bearer tokens with ``[REDACTED]``.

    Example:
        >>> RedactingFilter().redact("api_key=AIzaSy123456789abcdefghij")
        'api_key=[REDACTED]'
    """

    KEY_VALUE_PATTERNS = [
        re.compile(r'((?:api_key|key|token)\s*[=:]\s*)["\']?([a-zA-Z0-9_\-]{20,})["\']?', re.IGNORECASE),
        re.compile(r"(bearer\s+)([a-zA-Z0-9_\-]{20,})", re.IGNORECASE),
    ]
    # Gemini keys start with AIza
    STANDALONE_PATTERN = re.compile(r"\bAIza[a-zA-Z0-9_\-]{30,}\b")

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.redact(record.msg)
        if record.args:
            record.args = tuple(
                self.redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True

    def redact(self, text: str) -> str:
        for pattern in self.KEY_VALUE_PATTERNS:
            text = pattern.sub(r"\1[REDACTED]", text)
        return self.STANDALONE_PATTERN.sub("[REDACTED]", text)


def resolve_log_file(log_file: Path | None, log_dir: Path, debug: bool) -> Path | None:
    """Explicit ``log_file`` wins; ``--debug`` alone logs to ``log_dir/perftrack.log``."""
    if log_file is not None:
        return Path(log_file).expanduser()
    if debug:
        return Path(log_dir) / LOG_FILE_NAME
    return None


def setup_logging(
    level: str = "WARNING",
    log_file: Path | None = None,
    quiet_third_party: bool = True,
) -> None:
    """(Re)configure the ``perftrack`` logger.

    Existing handlers are closed and replaced, so calling this once per CLI
    invocation is safe.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.DEBUG if log_file else numeric_level)
    package_logger.propagate = False

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=numeric_level == logging.DEBUG,
    )
    console_handler.setLevel(numeric_level)
    console_handler.addFilter(RedactingFilter())
    package_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=FILE_MAX_BYTES, backupCount=FILE_BACKUPS, encoding="utf-8"
        )
        # The file always gets the full debug trail
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        file_handler.addFilter(RedactingFilter())
        package_logger.addHandler(file_handler)

    if quiet_third_party:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    package_logger.debug(f"Logging configured: console={level}, file={log_file}")


@contextmanager
def log_timing(logger: logging.Logger, message: str, level: int = logging.INFO) -> Iterator[None]:
    """Log ``message`` on entry and its duration (or failure) on exit."""
    logger.log(level, f"{message}...")
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        logger.error(f"{message} failed after {time.perf_counter() - start:.2f}s: {e}")
        raise
    logger.log(level, f"{message} done in {time.perf_counter() - start:.2f}s")
