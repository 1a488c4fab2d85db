from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from clinic_scheduling.core import config


DATABASE_URL = config.DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_schedule_schema_checked = False
_appointment_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_schedule_schema() -> None:
    global _schedule_schema_checked

    if _schedule_schema_checked:
        return

    with _schema_lock:
        if _schedule_schema_checked:
            return

        inspector = inspect(engine)

        if 'professional_schedules' not in inspector.get_table_names():
            _schedule_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('professional_schedules')}
        migration_steps = [
            ('lunch_start', 'ALTER TABLE professional_schedules ADD COLUMN lunch_start TIME'),
            ('lunch_end', 'ALTER TABLE professional_schedules ADD COLUMN lunch_end TIME'),
            (
                'appointment_duration',
                'ALTER TABLE professional_schedules ADD COLUMN appointment_duration INTEGER DEFAULT 30',
            ),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_professional_schedules_lookup '
                    'ON professional_schedules(professional_id, weekday, active)'
                )
            )
            if 'schedule_exceptions' in inspector.get_table_names():
                connection.execute(
                    text(
                        'CREATE INDEX IF NOT EXISTS idx_schedule_exceptions_lookup '
                        'ON schedule_exceptions(professional_id, date)'
                    )
                )

        _schedule_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('consultation_type_id', 'ALTER TABLE appointments ADD COLUMN consultation_type_id INTEGER'),
            ('internal_notes', 'ALTER TABLE appointments ADD COLUMN internal_notes VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_professional_date '
                    'ON appointments(professional_id, date)'
                )
            )

        _appointment_schema_checked = True
