"""Rich-formatted loggers for the records core.

Loggers here may carry record metadata but never field values, tokens,
secrets or keys; use ``app.infra.safe_logging`` to reference a value.
"""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "NDUMED_LOG_LEVEL"
LOGGER_PREFIX = "ndumed"


def _default_level() -> str:
    return (os.getenv(LOG_LEVEL_ENV) or "INFO").strip().upper()


def setup_logger(name: str, level: str | None = None) -> logging.Logger:
    """Attach a stderr RichHandler to ``ndumed.<name>`` once and return it."""
    qualified = name if name.startswith(f"{LOGGER_PREFIX}.") else f"{LOGGER_PREFIX}.{name}"
    logger = logging.getLogger(qualified)

    if logger.handlers:
        return logger

    logger.setLevel((level or _default_level()).upper())

    handler = RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get an existing logger or create a new one."""
    return setup_logger(name)
