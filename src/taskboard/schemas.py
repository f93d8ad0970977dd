from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator

from .models import TaskEntity, TaskPriority, TaskStatus, UserEntity

# Shared type for incoming due_date which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_URL_ADAPTER = TypeAdapter(HttpUrl)
_DATETIME_ADAPTER = TypeAdapter(datetime)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Internal helper to normalize due_date input into a UTC-aware datetime.
    - If value is a string, parse it as an ISO8601 datetime (a trailing "Z" is accepted); if time is missing, set to 00:00.
    - If value is a date (not datetime), convert to datetime at 00:00.
    - Naive datetimes are taken as UTC; aware ones are converted to UTC.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return _to_utc(value)

    if isinstance(value, date):
        # Promote a date to a datetime at midnight
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if isinstance(value, str):
        s = value.strip()
        try:
            return _to_utc(_DATETIME_ADAPTER.validate_python(s))
        except ValueError:
            try:
                d = date.fromisoformat(s)
            except ValueError as e:
                raise ValueError(
                    "Invalid due_date format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e
            return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)

    raise ValueError("Invalid type for due_date; expected date, datetime, or ISO8601 string.")


def _clean_name(v: str) -> str:
    s = v.strip()
    if not (2 <= len(s) <= 50):
        raise ValueError("Name must be between 2 and 50 characters")
    return s


def _normalize_email(v: str) -> str:
    return v.strip().lower()


def _clean_title(v: str) -> str:
    s = v.strip()
    if not (1 <= len(s) <= 200):
        raise ValueError("title length must be between 1 and 200 characters")
    return s


# PUBLIC_INTERFACE
class RegisterRequest(BaseModel):
    """
    Schema for creating a new account.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"name": "Ada Lovelace", "email": "ada@example.com", "password": "secret1"}
        }
    )

    name: str = Field(..., description="Display name (2..50 characters)")
    email: str = Field(..., description="Email address; stored lower-cased")
    password: str = Field(..., description="Password (at least 6 characters)")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        s = _normalize_email(v)
        if not _EMAIL_RE.match(s):
            raise ValueError("Please provide a valid email")
        return s

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v


class LoginRequest(BaseModel):
    email: str = Field(..., description="Email address used at registration (case-insensitive)")
    password: str = Field(..., description="Account password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class ProfileFields(BaseModel):
    """
    Optional profile sub-fields. Only the fields present in the payload are
    merged into the stored profile; an explicit null clears a field.
    """

    bio: Optional[str] = Field(default=None, description="Short biography (<= 500 characters)")
    avatar: Optional[str] = Field(default=None, description="Avatar image URL (http or https)")

    @field_validator("bio")
    @classmethod
    def validate_bio(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        s = v.strip()
        if len(s) > 500:
            raise ValueError("Bio cannot exceed 500 characters")
        return s

    @field_validator("avatar")
    @classmethod
    def validate_avatar(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        s = v.strip()
        try:
            _URL_ADAPTER.validate_python(s)
        except ValueError as e:
            raise ValueError("Avatar must be a valid URL") from e
        return s


# PUBLIC_INTERFACE
class ProfileUpdate(BaseModel):
    """
    Schema for updating the caller's profile.
    All fields are optional; only provided fields will be updated.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"name": "Ada King", "profile": {"bio": "Analyst", "avatar": "https://example.com/a.png"}}
        }
    )

    name: Optional[str] = Field(default=None, description="Display name (2..50 characters)")
    profile: Optional[ProfileFields] = Field(default=None, description="Profile fields to merge")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("name cannot be null")
        return _clean_name(v)


class ProfileOut(BaseModel):
    bio: Optional[str] = None
    avatar: Optional[str] = None


# PUBLIC_INTERFACE
class UserOut(BaseModel):
    """
    Public view of an account. The password hash is never part of it.
    """

    id: str = Field(..., description="Unique identifier of the user")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Normalized email address")
    profile: ProfileOut = Field(default_factory=ProfileOut, description="Optional profile fields")
    created_at: datetime = Field(..., description="Registration timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def from_entity(cls, entity: UserEntity) -> "UserOut":
        return cls(
            id=entity["id"],
            name=entity["name"],
            email=entity["email"],
            profile=ProfileOut(**entity["profile"]),
            created_at=entity["created_at"],
            updated_at=entity["updated_at"],
        )


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "status": "pending",
                "priority": "medium",
                "due_date": "2025-02-01",
            }
        }
    )

    title: str = Field(..., description="Short title for the task (1..200 characters after trimming)")
    description: Optional[str] = Field(default=None, max_length=1000, description="Optional detailed description")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Workflow status")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Priority level")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time of the task. Accepts ISO8601 date or datetime; dates are set to 00:00 UTC",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        return _clean_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Schema for updating an existing task.
    All fields are optional; only provided fields will be updated. An explicit
    null clears description or due_date; it is rejected for title, status and priority.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries and supplies",
                "status": "completed",
                "due_date": "2025-02-02T09:30:00",
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the task")
    description: Optional[str] = Field(default=None, max_length=1000, description="Optional detailed description")
    status: Optional[TaskStatus] = Field(default=None, description="Workflow status")
    priority: Optional[TaskPriority] = Field(default=None, description="Priority level")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time of the task. Accepts ISO8601 date or datetime; dates are set to 00:00 UTC",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        """
        If title is provided, strip whitespace and enforce 1..200 length.
        """
        if v is None:
            raise ValueError("title cannot be null")
        return _clean_title(v)

    @field_validator("status", "priority")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("value cannot be null")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.
    """

    id: str = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    status: TaskStatus = Field(..., description="Workflow status")
    priority: TaskPriority = Field(..., description="Priority level")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time as an ISO8601 datetime")
    owner_id: str = Field(..., description="Identifier of the owning user")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def from_entity(cls, entity: TaskEntity) -> "TaskOut":
        return cls(**entity)


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    token: str = Field(..., description="Bearer credential for subsequent requests")
    user: UserOut


class UserResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    user: UserOut


class TaskResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    task: TaskOut


class TaskListResponse(BaseModel):
    success: bool = True
    tasks: List[TaskOut] = Field(..., description="Tasks matching the filters, newest first")
    count: int = Field(..., description="Number of tasks returned")


class MessageResponse(BaseModel):
    success: bool = True
    message: str
