from datetime import date, time
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_scheduling.auth.dependencies import get_current_user
from clinic_scheduling.database import get_db
from clinic_scheduling.models.schedule import ProfessionalSchedule, ScheduleException
from clinic_scheduling.models.user import User
from clinic_scheduling.routes.availability_routes import (
    DATABASE_UNAVAILABLE_DETAIL,
    ensure_database_ready,
    get_clinic_professional,
)
from clinic_scheduling.scheduling.timeutils import to_minutes, to_time

router = APIRouter(tags=['schedules'])

MIN_APPOINTMENT_DURATION = 15
MAX_APPOINTMENT_DURATION = 120
REQUIRED_TEMPLATE_FIELDS = ('start_time', 'end_time', 'appointment_duration', 'active')


def _parse_optional_time(value: str | time | None) -> time | None:
    if value is None or value == '':
        return None
    return to_time(to_minutes(value))


def _check_range(start: time | None, end: time | None, message: str) -> None:
    if start is not None and end is not None and to_minutes(end) <= to_minutes(start):
        raise ValueError(message)


class ScheduleTemplateRequest(BaseModel):
    weekday: int = Field(ge=0, le=6)
    start_time: time
    end_time: time
    lunch_start: time | None = None
    lunch_end: time | None = None
    appointment_duration: int = Field(default=30, ge=MIN_APPOINTMENT_DURATION, le=MAX_APPOINTMENT_DURATION)
    active: bool = True

    @field_validator('start_time', 'end_time', 'lunch_start', 'lunch_end', mode='before')
    @classmethod
    def parse_time(cls, value):
        return _parse_optional_time(value)

    @model_validator(mode='after')
    def validate_hours(self):
        _check_range(self.start_time, self.end_time, 'End time must be after start time.')

        if (self.lunch_start is None) != (self.lunch_end is None):
            raise ValueError('Lunch start and lunch end must be provided together.')
        _check_range(self.lunch_start, self.lunch_end, 'Lunch end must be after lunch start.')

        return self


class ScheduleTemplateUpdateRequest(BaseModel):
    start_time: time | None = None
    end_time: time | None = None
    lunch_start: time | None = None
    lunch_end: time | None = None
    appointment_duration: int | None = Field(
        default=None,
        ge=MIN_APPOINTMENT_DURATION,
        le=MAX_APPOINTMENT_DURATION,
    )
    active: bool | None = None

    @field_validator('start_time', 'end_time', 'lunch_start', 'lunch_end', mode='before')
    @classmethod
    def parse_time(cls, value):
        return _parse_optional_time(value)

    @model_validator(mode='after')
    def reject_required_nulls(self):
        # Only the lunch pair may be cleared.
        for field_name in REQUIRED_TEMPLATE_FIELDS:
            if field_name in self.model_fields_set and getattr(self, field_name) is None:
                raise ValueError(f'{field_name} cannot be null.')
        return self


class ScheduleTemplateResponse(BaseModel):
    id: int
    professional_id: int
    weekday: int
    start_time: time
    end_time: time
    lunch_start: time | None = None
    lunch_end: time | None = None
    appointment_duration: int
    active: bool

    class Config:
        from_attributes = True


class ScheduleExceptionRequest(BaseModel):
    date: date
    type: Literal['holiday', 'vacation', 'sick_leave', 'other']
    description: str | None = None
    all_day: bool = True
    start_time: time | None = None
    end_time: time | None = None

    @field_validator('start_time', 'end_time', mode='before')
    @classmethod
    def parse_time(cls, value):
        return _parse_optional_time(value)

    @field_validator('description')
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    @model_validator(mode='after')
    def validate_hours(self):
        if self.all_day:
            self.start_time = None
            self.end_time = None
            return self

        if self.start_time is None or self.end_time is None:
            raise ValueError('Start and end times are required when the exception is not all day.')
        _check_range(self.start_time, self.end_time, 'End time must be after start time.')

        return self


class ScheduleExceptionResponse(BaseModel):
    id: int
    professional_id: int
    date: date
    type: str
    description: str | None = None
    all_day: bool
    start_time: time | None = None
    end_time: time | None = None

    class Config:
        from_attributes = True


def _database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def get_clinic_template(db: Session, template_id: int, current_user: User) -> ProfessionalSchedule:
    template = db.query(ProfessionalSchedule).filter(ProfessionalSchedule.id == template_id).first()
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Schedule not found.',
        )

    get_clinic_professional(db, template.professional_id, current_user)
    return template


def find_active_template(
    db: Session,
    professional_id: int,
    weekday: int,
    exclude_id: int | None = None,
) -> ProfessionalSchedule | None:
    query = db.query(ProfessionalSchedule).filter(
        ProfessionalSchedule.professional_id == professional_id,
        ProfessionalSchedule.weekday == weekday,
        ProfessionalSchedule.active.is_(True),
    )
    if exclude_id is not None:
        query = query.filter(ProfessionalSchedule.id != exclude_id)
    return query.first()


@router.post(
    '/professionals/{professional_id}/templates',
    response_model=ScheduleTemplateResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_schedule_template(
    professional_id: int,
    data: ScheduleTemplateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()
    get_clinic_professional(db, professional_id, current_user)

    try:
        if data.active and find_active_template(db, professional_id, data.weekday):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='An active schedule already exists for this weekday.',
            )

        template = ProfessionalSchedule(professional_id=professional_id, **data.model_dump())
        db.add(template)
        db.commit()
        db.refresh(template)

        return template
    except SQLAlchemyError as exc:
        db.rollback()
        raise _database_unavailable() from exc


@router.get(
    '/professionals/{professional_id}/templates',
    response_model=list[ScheduleTemplateResponse],
)
def list_schedule_templates(
    professional_id: int,
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()
    get_clinic_professional(db, professional_id, current_user)

    try:
        query = db.query(ProfessionalSchedule).filter(ProfessionalSchedule.professional_id == professional_id)
        if not include_inactive:
            query = query.filter(ProfessionalSchedule.active.is_(True))
        return query.order_by(ProfessionalSchedule.weekday.asc()).all()
    except SQLAlchemyError as exc:
        raise _database_unavailable() from exc


@router.patch('/templates/{template_id}', response_model=ScheduleTemplateResponse)
def update_schedule_template(
    template_id: int,
    data: ScheduleTemplateUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        template = get_clinic_template(db, template_id, current_user)
        updates = data.model_dump(exclude_unset=True)

        merged = {
            'start_time': template.start_time,
            'end_time': template.end_time,
            'lunch_start': template.lunch_start,
            'lunch_end': template.lunch_end,
        }
        merged.update({key: value for key, value in updates.items() if key in merged})
        try:
            _check_range(merged['start_time'], merged['end_time'], 'End time must be after start time.')
            if (merged['lunch_start'] is None) != (merged['lunch_end'] is None):
                raise ValueError('Lunch start and lunch end must be provided together.')
            _check_range(merged['lunch_start'], merged['lunch_end'], 'Lunch end must be after lunch start.')
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(exc),
            ) from exc

        if updates.get('active') and find_active_template(db, template.professional_id, template.weekday, template.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='An active schedule already exists for this weekday.',
            )

        for key, value in updates.items():
            setattr(template, key, value)

        db.commit()
        db.refresh(template)

        return template
    except SQLAlchemyError as exc:
        db.rollback()
        raise _database_unavailable() from exc


@router.delete('/templates/{template_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule_template(
    template_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        template = get_clinic_template(db, template_id, current_user)
        db.delete(template)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise _database_unavailable() from exc


@router.post(
    '/professionals/{professional_id}/exceptions',
    response_model=ScheduleExceptionResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_schedule_exception(
    professional_id: int,
    data: ScheduleExceptionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()
    get_clinic_professional(db, professional_id, current_user)

    try:
        existing = db.query(ScheduleException).filter(
            ScheduleException.professional_id == professional_id,
            ScheduleException.date == data.date,
        ).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='An exception already exists for this date.',
            )

        exception = ScheduleException(professional_id=professional_id, **data.model_dump())
        db.add(exception)
        db.commit()
        db.refresh(exception)

        return exception
    except SQLAlchemyError as exc:
        db.rollback()
        raise _database_unavailable() from exc


@router.get(
    '/professionals/{professional_id}/exceptions',
    response_model=list[ScheduleExceptionResponse],
)
def list_schedule_exceptions(
    professional_id: int,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if start_date and end_date and end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='end_date must not be before start_date.',
        )

    ensure_database_ready()
    get_clinic_professional(db, professional_id, current_user)

    try:
        query = db.query(ScheduleException).filter(ScheduleException.professional_id == professional_id)
        if start_date:
            query = query.filter(ScheduleException.date >= start_date)
        if end_date:
            query = query.filter(ScheduleException.date <= end_date)
        return query.order_by(ScheduleException.date.asc()).all()
    except SQLAlchemyError as exc:
        raise _database_unavailable() from exc


@router.delete('/exceptions/{exception_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule_exception(
    exception_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        exception = db.query(ScheduleException).filter(ScheduleException.id == exception_id).first()
        if exception is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Schedule exception not found.',
            )

        get_clinic_professional(db, exception.professional_id, current_user)
        db.delete(exception)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise _database_unavailable() from exc
