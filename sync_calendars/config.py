import os

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = LOG_LEVEL == "DEBUG"

DRY_RUN = os.getenv("DRY_RUN", "false").lower() == "true"

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise ValueError("DATABASE_URL must be set in the environment")

# Empty DB_SCHEMA means tables live in the default schema (SQLite has no schemas)
SCHEMA: str | None = os.getenv("DB_SCHEMA", "calendar_sync") or None

ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS")
if not ALLOWED_ORIGINS_RAW:
    raise ValueError("ALLOWED_ORIGINS must be set in the environment")

ALLOWED_ORIGINS: list[str] = [
    origin.strip() for origin in ALLOWED_ORIGINS_RAW.split(",")
]

FEED_TIMEOUT_SECONDS = float(os.getenv("FEED_TIMEOUT_SECONDS", "20"))
FEED_MAX_RETRIES = int(os.getenv("FEED_MAX_RETRIES", "2"))
FEED_FETCH_CONCURRENCY = int(os.getenv("FEED_FETCH_CONCURRENCY", "4"))

HOLD_TTL_HOURS = int(os.getenv("HOLD_TTL_HOURS", "72"))

EXPORT_UID_DOMAIN = os.getenv("EXPORT_UID_DOMAIN", "sync-calendars")
