from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Union

from .errors import NotFound, ValidationError
from .models import TASKS, Identity, TaskEntity, TaskPriority, TaskStatus
from .repositories import RecordStore
from .schemas import TaskCreate, TaskOut, TaskUpdate
from .security import new_id
from .utils import coerce, utcnow

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("title", "description", "status", "priority", "due_date")


@dataclass(frozen=True)
class TaskFilter:
    """
    Filters for listing tasks. Every supplied predicate must hold.
    """
    status: Optional[Union[TaskStatus, str]] = None
    priority: Optional[Union[TaskPriority, str]] = None
    search: Optional[str] = None  # case-insensitive substring of title + description


def _enum_value(enum_cls, value, name: str) -> Optional[str]:
    if value is None or value == "":
        return None
    try:
        return enum_cls(value).value
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{name} must be one of: {allowed}") from e


# PUBLIC_INTERFACE
class TaskService:
    """
    CRUD and filtering over tasks, always scoped to the calling identity.

    A task owned by another user is reported exactly like a missing one.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def _owned(self, identity: Identity, task_id: str) -> TaskEntity:
        task = self._store.get(TASKS, task_id)
        if task is None or task["owner_id"] != identity.user_id:
            raise NotFound("Task not found")
        return task  # type: ignore[return-value]

    def list(self, identity: Identity, query: Optional[TaskFilter] = None) -> List[TaskOut]:
        """
        Return the caller's tasks matching the filter, newest first.

        Tasks created at the same instant are ordered by most recent insertion.
        """
        q = query or TaskFilter()
        status = _enum_value(TaskStatus, q.status, "status")
        priority = _enum_value(TaskPriority, q.priority, "priority")
        search = q.search.lower() if q.search and q.search.strip() else ""

        def matches(t: TaskEntity) -> bool:
            if t["owner_id"] != identity.user_id:
                return False
            if status is not None and t["status"] != status:
                return False
            if priority is not None and t["priority"] != priority:
                return False
            if search:
                haystack = f"{t['title']} {t['description'] or ''}".lower()
                return search in haystack
            return True

        items = [t for t in self._store.list(TASKS) if matches(t)]  # type: ignore[arg-type]
        ordered = sorted(enumerate(items), key=lambda pair: (pair[1]["created_at"], pair[0]), reverse=True)
        return [TaskOut.from_entity(t) for _, t in ordered]

    def get(self, identity: Identity, task_id: str) -> TaskOut:
        return TaskOut.from_entity(self._owned(identity, task_id))

    def create(self, identity: Identity, payload: Union[TaskCreate, Mapping[str, Any]]) -> TaskOut:
        data = coerce(TaskCreate, payload)
        now = utcnow()
        task: TaskEntity = {
            "id": new_id(),
            "title": data.title,
            "description": data.description,
            "status": data.status.value,
            "priority": data.priority.value,
            "due_date": data.due_date,
            "owner_id": identity.user_id,
            "created_at": now,
            "updated_at": now,
        }
        with self._store.atomic():
            self._store.put(TASKS, dict(task))
        logger.info("Task %s created by user %s", task["id"], identity.user_id)
        return TaskOut.from_entity(task)

    def update(
        self, identity: Identity, task_id: str, payload: Union[TaskUpdate, Mapping[str, Any]]
    ) -> TaskOut:
        """
        Change only the fields present in the payload.

        id, owner_id and created_at are never taken from input; updated_at is
        always refreshed, even for an empty payload.
        """
        data = coerce(TaskUpdate, payload)
        with self._store.atomic():
            task = self._owned(identity, task_id)
            for field in _UPDATABLE_FIELDS:
                if field not in data.model_fields_set:
                    continue
                value = getattr(data, field)
                if field in ("status", "priority"):
                    value = value.value
                task[field] = value  # type: ignore[literal-required]
            task["updated_at"] = utcnow()
            self._store.put(TASKS, dict(task))
        logger.info("Task %s updated by user %s", task_id, identity.user_id)
        return TaskOut.from_entity(task)

    def delete(self, identity: Identity, task_id: str) -> None:
        with self._store.atomic():
            self._owned(identity, task_id)
            self._store.remove(TASKS, task_id)
        logger.info("Task %s deleted by user %s", task_id, identity.user_id)
