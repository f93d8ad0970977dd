"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these exceptions; the handlers registered in ``main`` turn
them into the JSON failure envelope ``{"success": false, "error", "message"}``.
"""
from __future__ import annotations

from typing import Any, List, Optional


# PUBLIC_INTERFACE
class TaskboardError(Exception):
    """Base class for every failure an operation reports to its caller."""

    kind: str = "Error"
    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TaskboardError):
    """Malformed or out-of-range input."""

    kind = "ValidationError"
    status_code = 422
    default_message = "Validation failed"

    def __init__(self, message: Optional[str] = None, details: Optional[List[Any]] = None) -> None:
        super().__init__(message)
        self.details = details or []


class Unauthorized(TaskboardError):
    kind = "Unauthorized"
    status_code = 401
    default_message = "Not authenticated"


class InvalidCredentials(TaskboardError):
    """Login mismatch. Unknown email and wrong password share this message."""

    kind = "InvalidCredentials"
    status_code = 401
    default_message = "Invalid email or password"


class Conflict(TaskboardError):
    kind = "Conflict"
    status_code = 409
    default_message = "Resource already exists"


class NotFound(TaskboardError):
    """Entity absent, or owned by someone other than the caller."""

    kind = "NotFound"
    status_code = 404
    default_message = "Resource not found"
