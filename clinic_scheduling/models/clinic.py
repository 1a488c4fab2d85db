"""Clinic and professional model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from clinic_scheduling.database import Base


class Clinic(Base):
    """Represents a tenant clinic."""
    __tablename__ = "clinics"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)


class Professional(Base):
    """Represents a healthcare professional who takes appointments."""
    __tablename__ = "professionals"

    id = Column(Integer, primary_key=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    specialty = Column(String)
    active = Column(Boolean, default=True)
