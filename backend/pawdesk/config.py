import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("true", "1", "yes")


DATABASE_URL = os.getenv("DATABASE_URL", "")
SQL_ECHO = _env_flag("SQL_ECHO", False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Solo Trainer fallback used when a session is booked without a trainer
AUTO_PROVISION_TRAINER = _env_flag("AUTO_PROVISION_TRAINER", True)
SOLO_TRAINER_NAME = "Solo Trainer"
SOLO_TRAINER_EMAIL = os.getenv("SOLO_TRAINER_EMAIL", "solo-trainer@pawdesk.local")

DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "EUR")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
