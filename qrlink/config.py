import os
from dotenv import load_dotenv

load_dotenv()


def _require_env(key: str) -> str:
    value = os.getenv(key)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {key}")
    return value


def _positive_int_env(key: str, default: int) -> int:
    value = int(os.getenv(key, default))
    if value < 1:
        raise RuntimeError(f"{key} must be a positive integer, got {value}")
    return value


class Config:
    SECRET_KEY = _require_env("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = _require_env("DATABASE_URL")
    BASE_URL = _require_env("BASE_URL").rstrip("/")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    TOKEN_TTL_DAYS = int(os.getenv("TOKEN_TTL_DAYS", 7))

    # Counter store. Leaving REDIS_URL unset disables rate limiting (always admit)
    # and the routing-record cache.
    REDIS_URL = os.getenv("REDIS_URL") or None
    REDIS_TTL = int(os.getenv("REDIS_TTL", 3600))
    REDIS_TIMEOUT = float(os.getenv("REDIS_TIMEOUT", 0.5))

    REDIRECT_RATE_LIMIT = int(os.getenv("REDIRECT_RATE_LIMIT", 100))
    REDIRECT_RATE_WINDOW_MS = int(os.getenv("REDIRECT_RATE_WINDOW_MS", 60_000))

    GEO_COUNTRY_HEADER = os.getenv("GEO_COUNTRY_HEADER", "CF-IPCountry")
    GEO_LOOKUP_URL = os.getenv("GEO_LOOKUP_URL") or None

    SCAN_RECORDER_WORKERS = _positive_int_env("SCAN_RECORDER_WORKERS", 4)
    # Scans queued beyond this are dropped instead of piling up in memory
    SCAN_RECORDER_MAX_PENDING = _positive_int_env("SCAN_RECORDER_MAX_PENDING", 1000)
    EXPORT_PAGE_SIZE = _positive_int_env("EXPORT_PAGE_SIZE", 1000)
