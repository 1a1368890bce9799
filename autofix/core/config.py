import os

from autofix.scheduling.availability import OperatingHours
from autofix.scheduling.clock import parse_hhmm


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), default=["http://localhost:4200"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# Defaults written to shop_settings the first time the app starts.
SHOP_OPEN_TIME = os.getenv("SHOP_OPEN_TIME", "09:00")
SHOP_CLOSE_TIME = os.getenv("SHOP_CLOSE_TIME", "18:00")
SLOT_INTERVAL_MINUTES = int(os.getenv("SLOT_INTERVAL_MINUTES", "30"))

FOLIO_PREFIX = os.getenv("FOLIO_PREFIX", "TM")
FOLIO_MAX_ATTEMPTS = int(os.getenv("FOLIO_MAX_ATTEMPTS", "25"))

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@autofix.com")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrador")

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")

    try:
        OperatingHours(
            open_minute=parse_hhmm(SHOP_OPEN_TIME),
            close_minute=parse_hhmm(SHOP_CLOSE_TIME, allow_end_of_day=True),
            slot_interval_minutes=SLOT_INTERVAL_MINUTES,
        )
    except ValueError as exc:
        raise RuntimeError(f"Invalid shop hours configuration: {exc}") from exc
