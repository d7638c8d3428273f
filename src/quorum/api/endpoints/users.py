# src/quorum/api/endpoints/users.py
"""Public profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from quorum.api.dependencies import CurrentClaimsDep, IdentityResolverDep
from quorum.core.security import UserID
from quorum.schemas.user import ProfileUpdateRequest, PublicProfileResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}", response_model=PublicProfileResponse)
def get_user_profile(user_id: int, resolver: IdentityResolverDep) -> PublicProfileResponse:
    """Return a user's public profile."""
    return PublicProfileResponse.model_validate(resolver.get_user(UserID(user_id)))


@router.put("/{user_id}", response_model=PublicProfileResponse)
def update_user_profile(
    user_id: int,
    payload: ProfileUpdateRequest,
    claims: CurrentClaimsDep,
    resolver: IdentityResolverDep,
) -> PublicProfileResponse:
    """Update your own bio and avatar."""
    user = resolver.update_profile(
        claims.user_id,
        user_id,
        bio=payload.bio,
        avatar=payload.avatar,
    )
    return PublicProfileResponse.model_validate(user)
