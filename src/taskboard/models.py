from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, TypedDict


USERS = "users"
TASKS = "tasks"
SESSIONS = "sessions"

COLLECTIONS = (USERS, TASKS, SESSIONS)

# Record fields persisted as ISO-8601 strings by text-based stores.
DATETIME_FIELDS = frozenset({"created_at", "updated_at", "due_date", "expires_at"})


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProfileEntity(TypedDict):
    bio: Optional[str]
    avatar: Optional[str]


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """
    Stored representation of an account.

    Fields:
    - id: Opaque unique identifier (uuid hex)
    - name: Display name (2..50 chars, trimmed)
    - email: Unique, trimmed and lower-cased
    - profile: Optional bio/avatar
    - password_hash: PBKDF2 digest; never leaves the service layer
    - created_at / updated_at: UTC timestamps
    """

    id: str
    name: str
    email: str
    profile: ProfileEntity
    password_hash: str
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    Stored representation of a task.

    Fields:
    - id: Opaque unique identifier (uuid hex)
    - title: Short title (1..200 chars, trimmed on input via schemas)
    - description: Optional detailed description (<= 1000 chars)
    - status: One of TaskStatus values
    - priority: One of TaskPriority values
    - due_date: Optional due datetime (UTC, normalized in schemas)
    - owner_id: Id of the creating user; never reassigned
    - created_at / updated_at: UTC timestamps
    """

    id: str
    title: str
    description: Optional[str]
    status: str
    priority: str
    due_date: Optional[datetime]
    owner_id: str
    created_at: datetime
    updated_at: datetime


class SessionEntity(TypedDict):
    # id is the sha256 digest of the credential
    id: str
    user_id: str
    created_at: datetime
    expires_at: Optional[datetime]


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, resolved from a credential."""

    user_id: str
