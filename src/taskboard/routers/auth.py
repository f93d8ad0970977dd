from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..accounts import AccountService
from ..dependencies import get_account_service, get_credential, get_identity
from ..models import Identity
from ..schemas import AuthResponse, LoginRequest, MessageResponse, RegisterRequest

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
)


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an account and return a bearer token with the public user view.",
    responses={
        201: {"description": "User registered successfully"},
        409: {"description": "Email already registered"},
        422: {"description": "Validation error"},
    },
)
def register(payload: RegisterRequest, accounts: AccountService = Depends(get_account_service)) -> AuthResponse:
    result = accounts.register(payload)
    return AuthResponse(message="User registered successfully", token=result.token, user=result.user)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login",
    description="Exchange email and password for a fresh bearer token.",
    responses={
        200: {"description": "Login successful"},
        401: {"description": "Invalid email or password"},
    },
)
def login(payload: LoginRequest, accounts: AccountService = Depends(get_account_service)) -> AuthResponse:
    result = accounts.login(payload)
    return AuthResponse(message="Login successful", token=result.token, user=result.user)


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    description="Revoke the bearer token used for this request.",
    responses={
        200: {"description": "Logged out"},
        401: {"description": "Not authenticated"},
    },
)
def logout(
    identity: Identity = Depends(get_identity),
    credential: str = Depends(get_credential),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    accounts.logout(identity, credential)
    return MessageResponse(message="Logged out successfully")
