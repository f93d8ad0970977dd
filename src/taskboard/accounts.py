from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from .auth import AuthGate
from .errors import Conflict, InvalidCredentials
from .models import USERS, Identity, UserEntity
from .repositories import RecordStore
from .schemas import LoginRequest, RegisterRequest, UserOut
from .security import generate_token, hash_password, new_id, verify_password
from .utils import coerce, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    """A freshly issued credential together with the public view of its user."""

    token: str
    user: UserOut


# PUBLIC_INTERFACE
class AccountService:
    """Registration, login and logout on top of the AuthGate."""

    def __init__(self, store: RecordStore, gate: AuthGate, hash_iterations: int = 260_000) -> None:
        self._store = store
        self._gate = gate
        self._hash_iterations = hash_iterations
        self._dummy_hash = hash_password(generate_token(), hash_iterations)

    def _find_by_email(self, email: str) -> Optional[UserEntity]:
        for user in self._store.list(USERS):
            if user["email"] == email:
                return user  # type: ignore[return-value]
        return None

    def register(self, payload: Union[RegisterRequest, Mapping[str, Any]]) -> AuthResult:
        """
        Create an account and sign it in.

        Raises:
            ValidationError for a short name/password or malformed email.
            Conflict if the normalized email is already registered.
        """
        data = coerce(RegisterRequest, payload)
        # Hashing is slow; keep it outside the store lock.
        password_hash = hash_password(data.password, self._hash_iterations)
        now = utcnow()
        user: UserEntity = {
            "id": new_id(),
            "name": data.name,
            "email": data.email,
            "profile": {"bio": None, "avatar": None},
            "password_hash": password_hash,
            "created_at": now,
            "updated_at": now,
        }
        with self._store.atomic():
            if self._find_by_email(data.email) is not None:
                raise Conflict("User already exists with this email")
            self._store.put(USERS, dict(user))
            token = self._gate.issue(user["id"])

        logger.info("Registered user %s", user["id"])
        return AuthResult(token=token, user=UserOut.from_entity(user))

    def login(self, payload: Union[LoginRequest, Mapping[str, Any]]) -> AuthResult:
        """
        Verify email and password and issue a fresh credential.

        An unknown email is checked against a dummy hash so both failure paths
        cost one full password verification.

        Raises:
            InvalidCredentials for an unknown email or a wrong password alike.
        """
        data = coerce(LoginRequest, payload)
        with self._store.atomic():
            user = self._find_by_email(data.email)

        if user is None:
            verify_password(data.password, self._dummy_hash)
            logger.warning("Failed login attempt")
            raise InvalidCredentials()
        if not verify_password(data.password, user["password_hash"]):
            logger.warning("Failed login attempt")
            raise InvalidCredentials()

        token = self._gate.issue(user["id"])
        logger.info("User %s logged in", user["id"])
        return AuthResult(token=token, user=UserOut.from_entity(user))

    def logout(self, identity: Identity, credential: str) -> None:
        self._gate.revoke(credential)
        logger.info("User %s logged out", identity.user_id)
