# app/schemas/profile.py
from app.schemas.base import CamelModel


class PremiumStatus(CamelModel):
    is_pro: bool = False
