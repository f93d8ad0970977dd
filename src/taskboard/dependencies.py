"""
FastAPI dependency providers.

Store and services are created once per application in ``create_app`` and kept
on ``app.state``; these helpers hand them to route functions. The caller's
identity is resolved per request and passed explicitly into every service call.
"""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .accounts import AccountService
from .auth import AuthGate
from .models import Identity
from .profiles import ProfileService
from .tasks import TaskService

_bearer = HTTPBearer(auto_error=False)


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profile_service


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service


# PUBLIC_INTERFACE
def get_credential(creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> Optional[str]:
    """Extract the bearer token from the Authorization header, if any."""
    if creds is None or not creds.credentials:
        return None
    return creds.credentials


# PUBLIC_INTERFACE
def get_identity(
    credential: Optional[str] = Depends(get_credential),
    gate: AuthGate = Depends(get_auth_gate),
) -> Identity:
    """
    Resolve the caller's identity.

    Raises:
        Unauthorized (rendered as 401) if the credential is missing or invalid.
    """
    return gate.resolve(credential)
