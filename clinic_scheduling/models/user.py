"""User model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String
from clinic_scheduling.database import Base


class User(Base):
    """Represents a clinic staff member."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    role = Column(String)  # owner/staff
    clinic_id = Column(Integer, ForeignKey("clinics.id"), index=True)
