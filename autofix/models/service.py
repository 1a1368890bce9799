"""Service catalogue model definitions."""

from sqlalchemy import Column, Integer, String
from autofix.database import Base


class Service(Base):
    """A bookable repair service and how long it takes."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False, default=0)
