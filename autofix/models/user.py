"""User model definitions."""

import enum

from sqlalchemy import Column, Integer, String
from autofix.database import Base


class Role(str, enum.Enum):
    ADMIN = "admin"
    CLIENT = "client"


class User(Base):
    """Represents a shop staff member or a client."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, default=Role.CLIENT.value)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value
