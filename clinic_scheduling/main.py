import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from clinic_scheduling.core import config
from clinic_scheduling.core.logging import configure_logging
from clinic_scheduling.database import Base, engine, ensure_appointment_schema, ensure_schedule_schema
from clinic_scheduling.models import appointment, clinic, consultation_type, schedule, user  # noqa: F401
from clinic_scheduling.routes import auth_routes, availability_routes, schedule_routes

configure_logging()
config.validate_runtime_config()

app = FastAPI(title='Clinic Scheduling API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_schedule_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Clinic Scheduling API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(schedule_routes.router, prefix='/schedules')
