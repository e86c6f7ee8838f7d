"""Shared exceptions and logging helpers."""

from app.common.exceptions import (
    ConfigurationError,
    InterpretationError,
    LLMError,
    RecordsError,
    UnknownEntityError,
)
from app.common.logger import get_logger

__all__ = [
    "ConfigurationError",
    "InterpretationError",
    "LLMError",
    "RecordsError",
    "UnknownEntityError",
    "get_logger",
]
