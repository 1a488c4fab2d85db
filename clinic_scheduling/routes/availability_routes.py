from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_scheduling.auth.dependencies import get_current_user
from clinic_scheduling.core import config
from clinic_scheduling.database import ensure_appointment_schema, ensure_schedule_schema, get_db
from clinic_scheduling.models.clinic import Professional
from clinic_scheduling.models.user import User
from clinic_scheduling.scheduling.errors import DataAccessError
from clinic_scheduling.scheduling.resolver import ScheduleResolver
from clinic_scheduling.scheduling.slots import SlotGenerator
from clinic_scheduling.scheduling.stores import (
    SqlAlchemyAppointmentStore,
    SqlAlchemyConsultationTypeStore,
    SqlAlchemyScheduleStore,
)
from clinic_scheduling.scheduling.timeutils import normalize_time_string

router = APIRouter(tags=['availability'])

MIN_DURATION_MINUTES = 5
MAX_DURATION_MINUTES = 240
DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


class AvailabilitySlotResponse(BaseModel):
    time: str
    available: bool
    professional_id: int
    duration_minutes: int

    class Config:
        from_attributes = True


class NextAvailableSlotResponse(BaseModel):
    date: date
    time: str

    class Config:
        from_attributes = True


class DayAvailabilityResponse(BaseModel):
    date: date
    total: int
    available: int


class SlotCheckResponse(BaseModel):
    professional_id: int
    date: date
    time: str
    available: bool


class WorkingHoursResponse(BaseModel):
    date: date
    start: str
    end: str
    duration: int
    lunch_start: str | None = None
    lunch_end: str | None = None


def ensure_database_ready() -> None:
    try:
        ensure_schedule_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def get_slot_generator(db: Session = Depends(get_db)) -> SlotGenerator:
    resolver = ScheduleResolver(SqlAlchemyScheduleStore(db))
    return SlotGenerator(resolver, SqlAlchemyAppointmentStore(db))


def get_clinic_professional(db: Session, professional_id: int, current_user: User) -> Professional:
    try:
        professional = db.query(Professional).filter(
            Professional.id == professional_id,
            Professional.clinic_id == current_user.clinic_id,
        ).first()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    if professional is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Professional not found.',
        )

    return professional


def resolve_requested_duration(
    db: Session,
    professional_id: int,
    duration: int | None,
    consultation_type_id: int | None,
) -> int | None:
    if duration is not None and consultation_type_id is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Provide either duration or consultation_type_id, not both.',
        )

    if consultation_type_id is None:
        return duration

    try:
        resolved = SqlAlchemyConsultationTypeStore(db).get_duration(consultation_type_id, professional_id)
    except DataAccessError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    if resolved is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Consultation type not found.',
        )

    return resolved


def validate_time_param(value: str) -> str:
    try:
        return normalize_time_string(value)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Invalid time: {value}. Use HH:MM.',
        ) from exc


@router.get('/professionals/{professional_id}/slots', response_model=list[AvailabilitySlotResponse])
def list_professional_slots(
    professional_id: int,
    target_date: date = Query(..., alias='date'),
    duration: int | None = Query(default=None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES),
    consultation_type_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    generator: SlotGenerator = Depends(get_slot_generator),
):
    ensure_database_ready()
    get_clinic_professional(db, professional_id, current_user)

    slot_duration = resolve_requested_duration(db, professional_id, duration, consultation_type_id)
    return generator.get_available_slots(professional_id, target_date, slot_duration)


@router.get('/slots', response_model=dict[int, list[AvailabilitySlotResponse]])
def list_slots_for_professionals(
    professional_ids: list[int] = Query(...),
    target_date: date = Query(..., alias='date'),
    duration: int | None = Query(default=None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    generator: SlotGenerator = Depends(get_slot_generator),
):
    ensure_database_ready()

    if not professional_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='At least one professional is required.',
        )

    for professional_id in professional_ids:
        get_clinic_professional(db, professional_id, current_user)

    return generator.generate_slots_for_professionals(professional_ids, target_date, duration)


@router.get(
    '/professionals/{professional_id}/next-available',
    response_model=NextAvailableSlotResponse | None,
)
def get_next_available_slot(
    professional_id: int,
    from_date: date | None = Query(default=None),
    duration: int | None = Query(default=None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES),
    max_days: int = Query(default=config.NEXT_AVAILABLE_LOOKAHEAD_DAYS, ge=1, le=config.MAX_LOOKAHEAD_DAYS),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    generator: SlotGenerator = Depends(get_slot_generator),
):
    ensure_database_ready()
    get_clinic_professional(db, professional_id, current_user)

    start_date = from_date or date.today()
    return generator.find_next_available_slot(professional_id, start_date, duration, max_days)


@router.get('/professionals/{professional_id}/week', response_model=list[DayAvailabilityResponse])
def get_weekly_availability(
    professional_id: int,
    week_start: date | None = Query(default=None),
    duration: int | None = Query(default=None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    generator: SlotGenerator = Depends(get_slot_generator),
):
    ensure_database_ready()
    get_clinic_professional(db, professional_id, current_user)

    start = week_start or week_start_for(date.today())
    summary = generator.get_weekly_availability(professional_id, start, duration)
    return [
        DayAvailabilityResponse(date=date.fromisoformat(day), total=counts.total, available=counts.available)
        for day, counts in summary.items()
    ]


@router.get('/professionals/{professional_id}/check', response_model=SlotCheckResponse)
def check_slot(
    professional_id: int,
    target_date: date = Query(..., alias='date'),
    slot_time: str = Query(..., alias='time'),
    duration: int | None = Query(default=None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    generator: SlotGenerator = Depends(get_slot_generator),
):
    normalized_time = validate_time_param(slot_time)

    ensure_database_ready()
    get_clinic_professional(db, professional_id, current_user)

    return SlotCheckResponse(
        professional_id=professional_id,
        date=target_date,
        time=normalized_time,
        available=generator.is_slot_available(professional_id, target_date, normalized_time, duration),
    )


@router.get('/professionals/{professional_id}/optimal', response_model=list[AvailabilitySlotResponse])
def list_optimal_slots(
    professional_id: int,
    target_date: date = Query(..., alias='date'),
    preferred_times: list[str] = Query(default=[]),
    duration: int | None = Query(default=None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    generator: SlotGenerator = Depends(get_slot_generator),
):
    normalized_preferences = [validate_time_param(value) for value in preferred_times]

    ensure_database_ready()
    get_clinic_professional(db, professional_id, current_user)

    return generator.find_optimal_slots(professional_id, target_date, normalized_preferences, duration)


@router.get('/professionals/{professional_id}/working-hours', response_model=WorkingHoursResponse | None)
def get_working_hours(
    professional_id: int,
    target_date: date = Query(..., alias='date'),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    generator: SlotGenerator = Depends(get_slot_generator),
):
    ensure_database_ready()
    get_clinic_professional(db, professional_id, current_user)

    window = generator.resolver.resolve_working_window(professional_id, target_date)
    if window is None:
        return None

    return WorkingHoursResponse(date=target_date, **window.as_dict())


def week_start_for(target_date: date) -> date:
    """Sunday on or before `target_date`, matching the 0=Sunday weekday convention."""
    return target_date - timedelta(days=(target_date.weekday() + 1) % 7)
