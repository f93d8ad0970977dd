from __future__ import annotations

from fastapi import APIRouter, Depends

from ..dependencies import get_identity, get_profile_service
from ..models import Identity
from ..profiles import ProfileService
from ..schemas import ProfileUpdate, UserResponse

router = APIRouter(
    prefix="/api/profile",
    tags=["profile"],
)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=UserResponse,
    summary="Get Profile",
    description="Return the public view of the authenticated user.",
    responses={
        200: {"description": "Profile found"},
        401: {"description": "Not authenticated"},
        404: {"description": "User not found"},
    },
)
def get_profile(
    identity: Identity = Depends(get_identity),
    profiles: ProfileService = Depends(get_profile_service),
) -> UserResponse:
    return UserResponse(user=profiles.get(identity))


# PUBLIC_INTERFACE
@router.put(
    "",
    response_model=UserResponse,
    summary="Update Profile",
    description=(
        "Update the display name and/or profile fields. Profile sub-fields that are "
        "omitted keep their current value."
    ),
    responses={
        200: {"description": "Profile updated"},
        401: {"description": "Not authenticated"},
        404: {"description": "User not found"},
        422: {"description": "Validation error"},
    },
)
def update_profile(
    payload: ProfileUpdate,
    identity: Identity = Depends(get_identity),
    profiles: ProfileService = Depends(get_profile_service),
) -> UserResponse:
    return UserResponse(message="Profile updated successfully", user=profiles.update(identity, payload))
