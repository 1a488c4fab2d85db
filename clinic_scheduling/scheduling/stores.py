"""
Data access for availability computation.

The resolver and slot generator only see the small protocols defined here, so
they can be driven by SQLAlchemy in the app and by in-memory fakes in tests.
"""

import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Optional, Protocol

from sqlalchemy import or_
from sqlalchemy.exc import MultipleResultsFound, SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_scheduling.models.appointment import Appointment
from clinic_scheduling.models.consultation_type import ConsultationType, ProfessionalConsultationType
from clinic_scheduling.models.schedule import ProfessionalSchedule, ScheduleException
from clinic_scheduling.scheduling.errors import DataAccessError
from clinic_scheduling.scheduling.timeutils import normalize_time_string

logger = logging.getLogger(__name__)

CANCELLED_STATUS = 'cancelled'


@dataclass(frozen=True)
class WeeklyTemplate:
    professional_id: int
    weekday: int
    start_time: time
    end_time: time
    appointment_duration: Optional[int] = None
    lunch_start: Optional[time] = None
    lunch_end: Optional[time] = None
    active: bool = True


@dataclass(frozen=True)
class ExceptionEntry:
    professional_id: int
    date: date
    all_day: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = None


class ScheduleStore(Protocol):
    def get_exception(self, professional_id, target_date: date) -> Optional[ExceptionEntry]:
        ...

    def get_active_template(self, professional_id, weekday: int) -> Optional[WeeklyTemplate]:
        ...


class AppointmentStore(Protocol):
    def list_booked_start_times(self, professional_id, target_date: date) -> set[str]:
        ...


class ConsultationTypeStore(Protocol):
    def get_duration(self, consultation_type_id, professional_id=None) -> Optional[int]:
        ...


class SqlAlchemyScheduleStore:
    def __init__(self, db: Session):
        self.db = db

    def get_exception(self, professional_id, target_date: date) -> Optional[ExceptionEntry]:
        try:
            row = self.db.query(ScheduleException).filter(
                ScheduleException.professional_id == professional_id,
                ScheduleException.date == target_date,
            ).one_or_none()
        except MultipleResultsFound as exc:
            raise DataAccessError(
                f'More than one schedule exception for professional {professional_id} on {target_date}',
                table='schedule_exceptions',
            ) from exc
        except SQLAlchemyError as exc:
            raise DataAccessError(str(exc), table='schedule_exceptions') from exc

        if row is None:
            return None

        return ExceptionEntry(
            professional_id=row.professional_id,
            date=row.date,
            all_day=bool(row.all_day),
            start_time=row.start_time,
            end_time=row.end_time,
            reason=row.description,
        )

    def get_active_template(self, professional_id, weekday: int) -> Optional[WeeklyTemplate]:
        try:
            row = self.db.query(ProfessionalSchedule).filter(
                ProfessionalSchedule.professional_id == professional_id,
                ProfessionalSchedule.weekday == weekday,
                ProfessionalSchedule.active.is_(True),
            ).one_or_none()
        except MultipleResultsFound as exc:
            raise DataAccessError(
                f'More than one active schedule for professional {professional_id} on weekday {weekday}',
                table='professional_schedules',
            ) from exc
        except SQLAlchemyError as exc:
            raise DataAccessError(str(exc), table='professional_schedules') from exc

        if row is None:
            return None

        return WeeklyTemplate(
            professional_id=row.professional_id,
            weekday=row.weekday,
            start_time=row.start_time,
            end_time=row.end_time,
            appointment_duration=row.appointment_duration,
            lunch_start=row.lunch_start,
            lunch_end=row.lunch_end,
            active=bool(row.active),
        )


class SqlAlchemyAppointmentStore:
    def __init__(self, db: Session):
        self.db = db

    def list_booked_start_times(self, professional_id, target_date: date) -> set[str]:
        try:
            rows = self.db.query(Appointment.start_time).filter(
                Appointment.professional_id == professional_id,
                Appointment.date == target_date,
                or_(Appointment.status.is_(None), Appointment.status != CANCELLED_STATUS),
            ).all()
        except SQLAlchemyError as exc:
            raise DataAccessError(str(exc), table='appointments') from exc

        return {normalize_time_string(start_time) for (start_time,) in rows if start_time is not None}


class SqlAlchemyConsultationTypeStore:
    def __init__(self, db: Session):
        self.db = db

    def get_duration(self, consultation_type_id, professional_id=None) -> Optional[int]:
        try:
            consultation_type = self.db.query(ConsultationType).filter(
                ConsultationType.id == consultation_type_id,
                ConsultationType.active.is_(True),
            ).first()

            if consultation_type is None:
                return None

            if professional_id is None:
                return consultation_type.duration

            link = self.db.query(ProfessionalConsultationType).filter(
                ProfessionalConsultationType.consultation_type_id == consultation_type_id,
                ProfessionalConsultationType.professional_id == professional_id,
                ProfessionalConsultationType.available.is_(True),
            ).first()
        except SQLAlchemyError as exc:
            raise DataAccessError(str(exc), table='consultation_types') from exc

        if link is not None and link.custom_duration:
            return link.custom_duration

        return consultation_type.duration
