"""
Error types for Sift.
"""
from typing import Any, Dict, Optional


class SiftError(Exception):
    """Base exception for the scoring engine."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details: Dict[str, Any] = dict(details) if details else {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for logging and CLI output."""
        return {
            "error_type": self.__class__.__name__,
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class InsufficientTrainingData(SiftError):
    """Fewer labeled examples than the network needs."""


class CorruptModelError(SiftError):
    """A stored model could not be turned back into a network."""


class PersistenceWriteError(SiftError):
    """The model store rejected a write."""


class StaleModelError(PersistenceWriteError):
    """The active model changed underneath an in-place update."""


class NumericInstabilityError(SiftError):
    """A forward pass produced NaN or infinity."""
