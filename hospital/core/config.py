import os
from dataclasses import dataclass

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
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./hospital.db")

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:4200"])

SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))
AUTH_FAILURE_DELAY_SECONDS = float(os.getenv("AUTH_FAILURE_DELAY_SECONDS", "3"))

APPOINTMENT_SESSION_DURATION_MINUTES = int(os.getenv("APPOINTMENT_SESSION_DURATION_MINUTES", "60"))
APPOINTMENT_OPENING_HOUR = int(os.getenv("APPOINTMENT_OPENING_HOUR", "10"))
APPOINTMENT_CLOSING_HOUR = int(os.getenv("APPOINTMENT_CLOSING_HOUR", "20"))

# "doctor_lock" serialises booking per doctor; "none" keeps the unguarded check-then-insert.
BOOKING_SERIALIZATION = os.getenv("BOOKING_SERIALIZATION", "doctor_lock").strip().lower()
BOOKING_SERIALIZATION_MODES = {"doctor_lock", "none"}

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")


@dataclass(frozen=True)
class AppointmentSettings:
    session_duration_minutes: int = 60
    opening_hour: int = 10
    closing_hour: int = 20

    @classmethod
    def from_config(cls) -> "AppointmentSettings":
        return cls(
            session_duration_minutes=APPOINTMENT_SESSION_DURATION_MINUTES,
            opening_hour=APPOINTMENT_OPENING_HOUR,
            closing_hour=APPOINTMENT_CLOSING_HOUR,
        )


def validate_runtime_config() -> None:
    if APPOINTMENT_SESSION_DURATION_MINUTES <= 0:
        raise RuntimeError("APPOINTMENT_SESSION_DURATION_MINUTES must be positive.")
    if not 0 <= APPOINTMENT_OPENING_HOUR < APPOINTMENT_CLOSING_HOUR <= 24:
        raise RuntimeError("APPOINTMENT_OPENING_HOUR must be before APPOINTMENT_CLOSING_HOUR.")
    if SESSION_TTL_HOURS <= 0:
        raise RuntimeError("SESSION_TTL_HOURS must be positive.")
    if BOOKING_SERIALIZATION not in BOOKING_SERIALIZATION_MODES:
        raise RuntimeError(f"BOOKING_SERIALIZATION must be one of {sorted(BOOKING_SERIALIZATION_MODES)}.")
    if APP_ENV.lower() == "production" and BOOKING_SERIALIZATION == "none":
        raise RuntimeError("BOOKING_SERIALIZATION=none allows double booking and is not allowed in production.")
