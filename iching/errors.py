"""
errors.py -- Exception taxonomy for consultations.

Input errors fail fast and reach the caller unchanged.
LLM errors never reach the caller; the orchestrator replaces them with a fallback.
Persistence errors reach the caller wrapped in ConsultationError.
"""


class InputValidationError(ValueError):
    """Empty question, missing user id, or a malformed supplied hexagram."""


class HexagramRangeError(ValueError):
    """Hexagram number outside the King Wen range 1..64."""


class LLMCallError(RuntimeError):
    """The LLM provider is unconfigured or failed to return a completion."""


class PersistenceError(RuntimeError):
    """The consultation store could not complete a read or write."""


class ConsultationError(RuntimeError):
    """A consultation could not be created after input validation passed."""

    PREFIX = "Consultation creation failed"

    def __init__(self, message: str) -> None:
        super().__init__(f"{self.PREFIX}: {message}")
