import os

# Database configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./events.db")

# Per-event admission lock
EVENT_LOCK_TIMEOUT = int(os.getenv("EVENT_LOCK_TIMEOUT", "10"))
EVENT_LOCK_BLOCKING_TIMEOUT = int(os.getenv("EVENT_LOCK_BLOCKING_TIMEOUT", "5"))
ADMISSION_MAX_RETRIES = int(os.getenv("ADMISSION_MAX_RETRIES", "3"))

# Minimum lead time between "now" and an event's date
EVENT_DATE_LEAD_HOURS = int(os.getenv("EVENT_DATE_LEAD_HOURS", "2"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

CELERY_TASK_ALWAYS_EAGER = os.getenv("CELERY_TASK_ALWAYS_EAGER", "false").lower() in ("1", "true", "yes")


def get_database_url():
    return DATABASE_URL


def is_development() -> bool:
    return ENVIRONMENT.lower() in ("development", "dev", "local")
