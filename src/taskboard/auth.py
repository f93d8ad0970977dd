from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from .errors import Unauthorized
from .models import SESSIONS, USERS, Identity, SessionEntity
from .repositories import RecordStore
from .security import generate_token, token_digest
from .utils import utcnow

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class AuthGate:
    """
    Maps bearer credentials to identities.

    Sessions live in the record store's ``sessions`` collection, keyed by the
    sha256 digest of the credential. Each session expires ``ttl_hours`` after it
    was issued; a ttl of 0 keeps sessions valid until revoked.

    Usage:
        gate = AuthGate(store, ttl_hours=settings.session_ttl_hours)
        token = gate.issue(user["id"])
        identity = gate.resolve(token)
    """

    def __init__(
        self,
        store: RecordStore,
        ttl_hours: int = 168,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._ttl = timedelta(hours=ttl_hours) if ttl_hours > 0 else None
        self._clock = clock

    def issue(self, user_id: str) -> str:
        """Create a new credential bound to the given user, dropping expired sessions."""
        token = generate_token()
        now = self._clock()
        session: SessionEntity = {
            "id": token_digest(token),
            "user_id": user_id,
            "created_at": now,
            "expires_at": now + self._ttl if self._ttl is not None else None,
        }
        with self._store.atomic():
            self.purge_expired(now)
            self._store.put(SESSIONS, dict(session))
        return token

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Remove every session past its expiry. Return how many were removed."""
        now = now or self._clock()
        removed = 0
        with self._store.atomic():
            for session in self._store.list(SESSIONS):
                expires_at = session.get("expires_at")
                if expires_at is not None and expires_at <= now:
                    removed += self._store.remove(SESSIONS, session["id"])
        if removed:
            logger.info("Purged %d expired sessions", removed)
        return removed

    def resolve(self, credential: Optional[str]) -> Identity:
        """
        Return the identity behind a credential.

        Raises:
            Unauthorized if the credential is missing, unknown, expired, or its
            user no longer exists.
        """
        if not credential:
            raise Unauthorized("Not authenticated")

        key = token_digest(credential)
        with self._store.atomic():
            session = self._store.get(SESSIONS, key)
            if session is None:
                raise Unauthorized("Invalid authentication credentials")

            expires_at = session.get("expires_at")
            if expires_at is not None and expires_at <= self._clock():
                self._store.remove(SESSIONS, key)
                logger.info("Expired session removed for user %s", session["user_id"])
                raise Unauthorized("Session expired")

            if self._store.get(USERS, session["user_id"]) is None:
                raise Unauthorized("Invalid authentication credentials")

        return Identity(user_id=session["user_id"])

    def revoke(self, credential: str) -> bool:
        """Invalidate a credential. Return True if it was active."""
        return self._store.remove(SESSIONS, token_digest(credential))
