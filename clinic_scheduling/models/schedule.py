"""Weekly schedule template and schedule exception model definitions."""

from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, String, Time, UniqueConstraint
from clinic_scheduling.database import Base


class ProfessionalSchedule(Base):
    """Recurring working hours of a professional for one weekday (0=Sunday)."""
    __tablename__ = "professional_schedules"

    id = Column(Integer, primary_key=True)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False, index=True)
    weekday = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    lunch_start = Column(Time)
    lunch_end = Column(Time)
    appointment_duration = Column(Integer, default=30)
    active = Column(Boolean, default=True)


class ScheduleException(Base):
    """Date-specific override (holiday, vacation, custom hours)."""
    __tablename__ = "schedule_exceptions"
    __table_args__ = (UniqueConstraint("professional_id", "date"),)

    id = Column(Integer, primary_key=True)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    type = Column(String, nullable=False)  # holiday/vacation/sick_leave/other
    description = Column(String)
    all_day = Column(Boolean, default=True)
    start_time = Column(Time)
    end_time = Column(Time)
