from datetime import date, time

import pytest

from clinic_scheduling.models.appointment import Appointment
from clinic_scheduling.models.clinic import Clinic, Professional
from clinic_scheduling.models.consultation_type import ConsultationType, ProfessionalConsultationType
from clinic_scheduling.models.schedule import ProfessionalSchedule, ScheduleException
from clinic_scheduling.scheduling.errors import DataAccessError
from clinic_scheduling.scheduling.stores import (
    SqlAlchemyAppointmentStore,
    SqlAlchemyConsultationTypeStore,
    SqlAlchemyScheduleStore,
)

MONDAY = date(2026, 1, 5)


@pytest.fixture
def professional(db_session):
    clinic = Clinic(name='Downtown Clinic')
    db_session.add(clinic)
    db_session.commit()

    professional = Professional(clinic_id=clinic.id, name='Dr. Ana Costa', specialty='cardiology')
    db_session.add(professional)
    db_session.commit()
    db_session.refresh(professional)
    return professional


def test_get_active_template_maps_row(db_session, professional) -> None:
    db_session.add(
        ProfessionalSchedule(
            professional_id=professional.id,
            weekday=1,
            start_time=time(8, 0),
            end_time=time(17, 0),
            lunch_start=time(12, 0),
            lunch_end=time(13, 0),
            appointment_duration=45,
        )
    )
    db_session.commit()

    template = SqlAlchemyScheduleStore(db_session).get_active_template(professional.id, 1)

    assert template is not None
    assert template.start_time == time(8, 0)
    assert template.end_time == time(17, 0)
    assert template.lunch_start == time(12, 0)
    assert template.appointment_duration == 45
    assert template.active is True


def test_get_active_template_ignores_inactive_rows(db_session, professional) -> None:
    db_session.add(
        ProfessionalSchedule(
            professional_id=professional.id,
            weekday=2,
            start_time=time(8, 0),
            end_time=time(12, 0),
            active=False,
        )
    )
    db_session.commit()

    assert SqlAlchemyScheduleStore(db_session).get_active_template(professional.id, 2) is None


def test_get_active_template_rejects_ambiguous_rows(db_session, professional) -> None:
    for start, end in ((time(8, 0), time(12, 0)), (time(13, 0), time(18, 0))):
        db_session.add(
            ProfessionalSchedule(professional_id=professional.id, weekday=3, start_time=start, end_time=end)
        )
    db_session.commit()

    with pytest.raises(DataAccessError) as exception_info:
        SqlAlchemyScheduleStore(db_session).get_active_template(professional.id, 3)

    assert exception_info.value.table == 'professional_schedules'


def test_get_exception_is_scoped_to_the_date(db_session, professional) -> None:
    db_session.add(
        ScheduleException(
            professional_id=professional.id,
            date=MONDAY,
            type='other',
            description='Conference',
            all_day=False,
            start_time=time(14, 0),
            end_time=time(18, 0),
        )
    )
    db_session.commit()
    store = SqlAlchemyScheduleStore(db_session)

    exception = store.get_exception(professional.id, MONDAY)

    assert exception is not None
    assert exception.all_day is False
    assert exception.start_time == time(14, 0)
    assert exception.reason == 'Conference'
    assert store.get_exception(professional.id, date(2026, 1, 6)) is None


def test_list_booked_start_times_skips_cancelled(db_session, professional) -> None:
    db_session.add_all(
        [
            Appointment(
                professional_id=professional.id,
                date=MONDAY,
                start_time=time(9, 0),
                end_time=time(9, 30),
                status='scheduled',
            ),
            Appointment(
                professional_id=professional.id,
                date=MONDAY,
                start_time=time(10, 0),
                end_time=time(10, 30),
                status='cancelled',
            ),
            Appointment(
                professional_id=professional.id,
                date=MONDAY,
                start_time=time(11, 30),
                end_time=time(12, 0),
                status='completed',
            ),
            Appointment(
                professional_id=professional.id,
                date=date(2026, 1, 6),
                start_time=time(9, 0),
                end_time=time(9, 30),
            ),
        ]
    )
    db_session.commit()

    booked = SqlAlchemyAppointmentStore(db_session).list_booked_start_times(professional.id, MONDAY)

    assert booked == {'09:00', '11:30'}


def test_list_booked_start_times_counts_missing_status_as_booked(db_session, professional) -> None:
    db_session.add(
        Appointment(
            professional_id=professional.id,
            date=MONDAY,
            start_time=time(14, 0),
            end_time=time(14, 30),
            status=None,
        )
    )
    db_session.commit()

    booked = SqlAlchemyAppointmentStore(db_session).list_booked_start_times(professional.id, MONDAY)

    assert booked == {'14:00'}


def test_get_duration_prefers_professional_override(db_session, professional) -> None:
    consultation = ConsultationType(clinic_id=professional.clinic_id, name='First visit', duration=30)
    db_session.add(consultation)
    db_session.commit()
    db_session.add(
        ProfessionalConsultationType(
            professional_id=professional.id,
            consultation_type_id=consultation.id,
            custom_duration=50,
        )
    )
    db_session.commit()
    store = SqlAlchemyConsultationTypeStore(db_session)

    assert store.get_duration(consultation.id, professional.id) == 50
    assert store.get_duration(consultation.id) == 30


def test_get_duration_ignores_unavailable_override(db_session, professional) -> None:
    consultation = ConsultationType(clinic_id=professional.clinic_id, name='Follow-up', duration=20)
    db_session.add(consultation)
    db_session.commit()
    db_session.add(
        ProfessionalConsultationType(
            professional_id=professional.id,
            consultation_type_id=consultation.id,
            custom_duration=40,
            available=False,
        )
    )
    db_session.commit()

    assert SqlAlchemyConsultationTypeStore(db_session).get_duration(consultation.id, professional.id) == 20


def test_get_duration_returns_none_for_inactive_or_unknown_types(db_session, professional) -> None:
    consultation = ConsultationType(clinic_id=professional.clinic_id, name='Retired', duration=60, active=False)
    db_session.add(consultation)
    db_session.commit()
    store = SqlAlchemyConsultationTypeStore(db_session)

    assert store.get_duration(consultation.id, professional.id) is None
    assert store.get_duration(9999) is None
