"""Appointment model definitions."""

from sqlalchemy import Column, Date, ForeignKey, Integer, String, Time, UniqueConstraint
from clinic_scheduling.database import Base


class Appointment(Base):
    """Represents a booked appointment. Written by the booking flow, read here."""
    __tablename__ = "appointments"
    __table_args__ = (UniqueConstraint("professional_id", "date", "start_time"),)

    id = Column(Integer, primary_key=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"))
    patient_id = Column(Integer)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False)
    consultation_type_id = Column(Integer, ForeignKey("consultation_types.id"))
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String, default="scheduled")
    notes = Column(String)
    internal_notes = Column(String)
