# app/services/profile_service.py
from typing import Optional

from sqlalchemy.orm import Session

from app.models.profile import Profile


def get_profile(db: Session, profile_id: int) -> Optional[Profile]:
    return db.get(Profile, profile_id)


def is_pro(db: Session, profile_id: int | None) -> bool:
    """Unknown or anonymous users are on the Free plan."""
    if profile_id is None:
        return False
    profile = get_profile(db, profile_id)
    return bool(profile and profile.is_pro)
