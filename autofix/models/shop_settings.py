"""Shop operating hours."""

from sqlalchemy import Column, Integer
from autofix.database import Base

SHOP_SETTINGS_ID = 1


class ShopSettings(Base):
    """Single-row table holding the shop's opening hours and slot granularity."""
    __tablename__ = "shop_settings"

    id = Column(Integer, primary_key=True, default=SHOP_SETTINGS_ID)
    open_minute = Column(Integer, nullable=False)
    close_minute = Column(Integer, nullable=False)
    slot_interval_minutes = Column(Integer, nullable=False)
