import os
from datetime import date, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from clinic_scheduling.database import Base  # noqa: E402
from clinic_scheduling.models import appointment, clinic, consultation_type, schedule, user  # noqa: E402,F401
from clinic_scheduling.scheduling.errors import DataAccessError  # noqa: E402
from clinic_scheduling.scheduling.stores import ExceptionEntry, WeeklyTemplate  # noqa: E402


class FakeScheduleStore:
    def __init__(self, templates=None, exceptions=None, failing=()):
        self.templates = {(t.professional_id, t.weekday): t for t in (templates or [])}
        self.exceptions = {(e.professional_id, e.date): e for e in (exceptions or [])}
        self.failing = set(failing)
        self.calls = []

    def get_exception(self, professional_id, target_date: date):
        self.calls.append(('exception', professional_id, target_date))
        if ('exception', professional_id) in self.failing:
            raise DataAccessError('permission denied for table schedule_exceptions')
        return self.exceptions.get((professional_id, target_date))

    def get_active_template(self, professional_id, weekday: int):
        self.calls.append(('template', professional_id, weekday))
        if ('template', professional_id) in self.failing:
            raise DataAccessError('connection refused')
        template = self.templates.get((professional_id, weekday))
        if template is not None and not template.active:
            return None
        return template


class FakeAppointmentStore:
    def __init__(self, booked=None, failing=(), exploding=()):
        self.booked = booked or {}
        self.failing = set(failing)
        self.exploding = set(exploding)

    def list_booked_start_times(self, professional_id, target_date: date) -> set[str]:
        if professional_id in self.failing:
            raise DataAccessError('connection reset')
        if professional_id in self.exploding:
            raise RuntimeError('unexpected failure')
        return set(self.booked.get((professional_id, target_date), set()))


def make_template(professional_id, weekday, start, end, duration=30, lunch=None, active=True):
    lunch_start, lunch_end = lunch if lunch else (None, None)
    return WeeklyTemplate(
        professional_id=professional_id,
        weekday=weekday,
        start_time=time.fromisoformat(start),
        end_time=time.fromisoformat(end),
        appointment_duration=duration,
        lunch_start=time.fromisoformat(lunch_start) if lunch_start else None,
        lunch_end=time.fromisoformat(lunch_end) if lunch_end else None,
        active=active,
    )


def make_exception(professional_id, on_date, all_day=True, start=None, end=None, reason=None):
    return ExceptionEntry(
        professional_id=professional_id,
        date=on_date,
        all_day=all_day,
        start_time=time.fromisoformat(start) if start else None,
        end_time=time.fromisoformat(end) if end else None,
        reason=reason,
    )


@pytest.fixture
def fake_schedule_store():
    return FakeScheduleStore


@pytest.fixture
def fake_appointment_store():
    return FakeAppointmentStore


@pytest.fixture
def template_factory():
    return make_template


@pytest.fixture
def exception_factory():
    return make_exception


@pytest.fixture
def db_session():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
