"""Domain errors raised by the assessment services.

Services raise these; ``tutorhub.main`` turns them into the JSON envelope
with the matching HTTP status.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class TutorhubError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400
    code: str = "ERROR"

    def __init__(self, message: str, *, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_error(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


class ValidationError(TutorhubError):
    """Missing/invalid input: required fields, bad dates, empty key, bad audience."""

    status_code = 422
    code = "VALIDATION_ERROR"


class NotFoundError(TutorhubError):
    """Assessment, review or response is absent (or not visible to the caller)."""

    status_code = 404
    code = "NOT_FOUND"


class ConflictError(TutorhubError):
    """Write collided with existing state, e.g. a duplicate LearnerResponse insert."""

    status_code = 409
    code = "CONFLICT"


class InvalidTransitionError(ConflictError):
    code = "INVALID_TRANSITION"
