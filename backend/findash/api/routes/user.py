"""Profile endpoints for the authenticated user."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from findash.api.admission import ApiRateLimitedRoute
from findash.deps import get_user_service
from findash.schemas.auth import ProfileUpdateRequest, PublicUser
from findash.security import IdentityClaims, require_identity
from findash.services.users import UserService

router = APIRouter(prefix="/user", tags=["user"], route_class=ApiRateLimitedRoute)


@router.get("/profile", response_model=PublicUser, summary="Current user's profile")
async def get_profile(
    claims: IdentityClaims = Depends(require_identity),
    users: UserService = Depends(get_user_service),
) -> PublicUser:
    user = await users.get_by_id(claims.subject_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return PublicUser.model_validate(user)


@router.put("/profile", response_model=PublicUser, summary="Update name, avatar or preferences")
async def update_profile(
    payload: ProfileUpdateRequest,
    claims: IdentityClaims = Depends(require_identity),
    users: UserService = Depends(get_user_service),
) -> PublicUser:
    preferences = payload.preferences.model_dump(exclude_none=True) if payload.preferences else None
    user = await users.update_profile(
        claims.subject_id,
        name=payload.name,
        avatar=payload.avatar,
        preferences=preferences,
    )
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return PublicUser.model_validate(user)
