"""Consultation type model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String, UniqueConstraint
from clinic_scheduling.database import Base


class ConsultationType(Base):
    """A kind of consultation offered by a clinic, with its default duration."""
    __tablename__ = "consultation_types"
    __table_args__ = (UniqueConstraint("clinic_id", "name"),)

    id = Column(Integer, primary_key=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    name = Column(String, nullable=False)
    duration = Column(Integer, nullable=False, default=30)
    price = Column(Numeric(10, 2))
    active = Column(Boolean, default=True)
    is_default = Column(Boolean, default=False)


class ProfessionalConsultationType(Base):
    """Links a professional to a consultation type, optionally overriding duration/price."""
    __tablename__ = "professional_consultation_types"
    __table_args__ = (UniqueConstraint("professional_id", "consultation_type_id"),)

    id = Column(Integer, primary_key=True)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False)
    consultation_type_id = Column(Integer, ForeignKey("consultation_types.id"), nullable=False)
    custom_duration = Column(Integer)
    custom_price = Column(Numeric(10, 2))
    available = Column(Boolean, default=True)
