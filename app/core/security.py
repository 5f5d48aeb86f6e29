# app/core/security.py
"""
Caller identity. Sign-in itself happens in the external auth provider; the
API only receives the caller's profile id and checks that it exists.
"""
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models.profile import Profile
from app.services import profile_service


def resolve_profile(db: Session, user_id: int | None) -> Profile:
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    profile = profile_service.get_profile(db, user_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Profile not found",
        )
    return profile
