from __future__ import annotations

import logging
from typing import Any, Mapping, Union

from .errors import NotFound
from .models import USERS, Identity
from .repositories import RecordStore
from .schemas import ProfileUpdate, UserOut
from .utils import coerce, utcnow

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class ProfileService:
    """Read and update the caller's own account."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def get(self, identity: Identity) -> UserOut:
        user = self._store.get(USERS, identity.user_id)
        if user is None:
            raise NotFound("User not found")
        return UserOut.from_entity(user)  # type: ignore[arg-type]

    def update(self, identity: Identity, payload: Union[ProfileUpdate, Mapping[str, Any]]) -> UserOut:
        """
        Apply the supplied fields to the caller's account.

        ``name`` replaces the display name. Profile sub-fields are merged one by
        one: a sub-field absent from the payload keeps its stored value, and an
        explicit null clears it. ``updated_at`` is always refreshed.
        """
        data = coerce(ProfileUpdate, payload)
        with self._store.atomic():
            user = self._store.get(USERS, identity.user_id)
            if user is None:
                raise NotFound("User not found")

            if "name" in data.model_fields_set:
                user["name"] = data.name
            if data.profile is not None:
                profile = dict(user.get("profile") or {})
                for field in data.profile.model_fields_set:
                    profile[field] = getattr(data.profile, field)
                user["profile"] = profile
            user["updated_at"] = utcnow()

            self._store.put(USERS, user)

        logger.info("Profile updated for user %s", identity.user_id)
        return UserOut.from_entity(user)  # type: ignore[arg-type]
