"""Exceptions raised by the engine and the invariant guard."""

import logging

logger = logging.getLogger(__name__)


class EngineError(Exception):
    """Base class for microflow errors."""


class FeedParseError(EngineError):
    """A feed message could not be parsed. The message is dropped."""

    def __init__(self, message: str, payload: object = None):
        super().__init__(message)
        self.payload = payload


class InvariantViolation(EngineError, AssertionError):
    """An engine invariant was breached while running in strict mode."""


def enforce_non_negative(value: float, what: str, strict: bool) -> float:
    """
    Return value unchanged when it is >= 0.

    Negative values raise InvariantViolation in strict mode and are
    clamped to zero otherwise.
    """
    if value >= 0:
        return value
    if strict:
        raise InvariantViolation(f"{what} must be non-negative, got {value}")
    logger.warning(f"Clamping negative {what} ({value}) to 0")
    return 0.0
