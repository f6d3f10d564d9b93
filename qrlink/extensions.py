# qrlink/extensions.py

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
import redis

db = SQLAlchemy()
cors = CORS()


def init_redis(app):
    """Build the counter-store client from REDIS_URL, or None when unconfigured.

    The client is kept even if the first ping fails so that the rate limiter
    starts admitting through the backend as soon as it comes back.
    """
    url = app.config.get("REDIS_URL")
    if not url:
        app.logger.info("REDIS_URL not set; rate limiting and link cache disabled.")
        return None

    timeout = app.config.get("REDIS_TIMEOUT", 0.5)
    client = redis.Redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    )

    try:
        client.ping()
        app.logger.info("Redis initialized successfully.")
    except Exception as exc:
        app.logger.warning(f"Redis initialization failed: {exc}")

    return client


def get_rate_limiter():
    return current_app.extensions["qrlink.rate_limiter"]


def get_scan_recorder():
    return current_app.extensions["qrlink.scan_recorder"]


def get_link_cache():
    return current_app.extensions["qrlink.link_cache"]
