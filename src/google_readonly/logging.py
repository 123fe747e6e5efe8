"""Logging configuration for the gro CLI.

Diagnostics go to stderr through loguru; regular command output is printed
to stdout by the commands themselves. Debug messages only appear with
``--verbose`` (or ``GRO_LOG_LEVEL=DEBUG``).

Token values are never logged. Log backend names and shortened paths only.
"""

import logging
import sys

from loguru import logger


def configure_logging(*, verbose: bool = False, log_level: str = "WARNING") -> None:
    """Configure loguru for the CLI.

    Args:
        verbose: If True, log at DEBUG regardless of log_level.
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    level = "DEBUG" if verbose else (log_level.upper() or "WARNING")

    # Remove default handler
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<level>[{level}]</level> {message}",
        colorize=None,
        backtrace=False,
        diagnose=False,  # Variable values could include secrets
    )

    _intercept_standard_logging(level)


def _intercept_standard_logging(log_level: str) -> None:
    """Route standard library logging (keyring, google-auth, httpx) to loguru."""

    class InterceptHandler(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            try:
                level = logger.level(record.levelname).name
            except ValueError:
                level = record.levelno

            # Find caller from where the logged message originated
            frame, depth = logging.currentframe(), 2
            while frame and frame.f_code.co_filename == logging.__file__:
                frame = frame.f_back
                depth += 1

            logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())

    logging.basicConfig(handlers=[InterceptHandler()], level=log_level, force=True)

    for name in ["keyring", "google.auth", "httpx", "httpcore"]:
        logging.getLogger(name).setLevel(log_level)
