"""Exception hierarchy for the clinical records core."""

from __future__ import annotations


class RecordsError(Exception):
    """Base error for the records core."""

    pass


class ConfigurationError(RecordsError):
    """Required operator configuration is missing or invalid.

    Fatal for the calling operation. Callers translate it into a generic
    server error; it must never be swallowed.
    """

    def __init__(self, message: str, variable: str | None = None):
        self.variable = variable
        super().__init__(message)


class UnknownEntityError(RecordsError, KeyError):
    """No sensitive-field list is registered for the entity name."""

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"No sensitive field list registered for entity '{entity}'")

    def __str__(self) -> str:
        return self.args[0]


class LLMError(RecordsError):
    """LLM call failed (timeout, invalid response, etc.)."""

    pass


class InterpretationError(RecordsError):
    """Every configured AI provider failed to interpret a result."""

    def __init__(self, message: str, errors: list[tuple[str, str]] | None = None):
        self.errors = list(errors or [])
        super().__init__(message)
