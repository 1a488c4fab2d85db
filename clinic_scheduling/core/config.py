import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic_scheduling.db")

CORS_ALLOWED_ORIGINS = _get_list(
    os.getenv("CORS_ALLOWED_ORIGINS"),
    default=["http://localhost:3000"],
)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# Used when neither the request nor the resolved window carries a duration.
DEFAULT_APPOINTMENT_DURATION_MINUTES = int(os.getenv("DEFAULT_APPOINTMENT_DURATION_MINUTES", "30"))
# Schedule exceptions have no duration column of their own.
EXCEPTION_APPOINTMENT_DURATION_MINUTES = int(os.getenv("EXCEPTION_APPOINTMENT_DURATION_MINUTES", "30"))
NEXT_AVAILABLE_LOOKAHEAD_DAYS = int(os.getenv("NEXT_AVAILABLE_LOOKAHEAD_DAYS", "30"))
MAX_LOOKAHEAD_DAYS = int(os.getenv("MAX_LOOKAHEAD_DAYS", "90"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
