from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import TaskboardError, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def format_errors(errors: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """
    Reduce pydantic/FastAPI error dicts to JSON-safe ``{loc, msg, type}`` entries.

    The raw ``ctx`` of a failed validator may hold the exception object itself,
    which is not serializable, so it is dropped.
    """
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in errors
    ]


# PUBLIC_INTERFACE
def coerce(model: Type[ModelT], payload: Union[ModelT, Mapping[str, Any]]) -> ModelT:
    """
    Accept either an already-validated model or a plain mapping.

    Mappings are validated with the same model, and failures surface as the
    service-level ValidationError rather than pydantic's.
    """
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        details = format_errors(exc.errors())
        message = details[0]["msg"] if details else None
        raise ValidationError(message, details=details) from exc


# PUBLIC_INTERFACE
def failure_envelope(exc: TaskboardError) -> Dict[str, Any]:
    """
    Build the standard failure body for an operation error.

    Returns:
        Dict with keys: success, error, message and, for validation errors, detail.
    """
    body: Dict[str, Any] = {"success": False, "error": exc.kind, "message": exc.message}
    if isinstance(exc, ValidationError):
        body["detail"] = exc.details
    return body
