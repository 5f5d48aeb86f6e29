# app/api/endpoints/premium.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.profile import PremiumStatus
from app.services import profile_service

router = APIRouter(prefix="/premium", tags=["premium"])


@router.get("/check", response_model=PremiumStatus)
def check_premium(
    user_id: int | None = Query(None, alias="userId"),
    db: Session = Depends(get_db),
):
    """
    PRO status used by the client to gate the character limit and mentor review.
    """
    return PremiumStatus(is_pro=profile_service.is_pro(db, user_id))
