"""Blocked period model definitions."""

from sqlalchemy import Column, Date, Integer, String
from autofix.database import Base


class BlockedPeriod(Base):
    """Time an admin has taken out of the calendar.

    A NULL start_minute blocks the whole day.
    """
    __tablename__ = "blocked_periods"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False)
    start_minute = Column(Integer, nullable=True)
    note = Column(String, nullable=True)

    @property
    def is_whole_day(self) -> bool:
        return self.start_minute is None
