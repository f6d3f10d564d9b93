"""
Redirect orchestration for ``GET /go/<code>``.

Only the rate-limit check and the code lookup decide the response. Scan
recording is handed to the ScanRecorder and never awaited.
"""

from flask import current_app, jsonify, redirect, request

from ..extensions import get_link_cache, get_rate_limiter, get_scan_recorder
from ..repositories.link_repository import Resolution, resolve
from ..utils.bot_filter import is_bot
from .geo_service import country_from_headers


def client_identifier(headers) -> str:
    """First X-Forwarded-For entry, else X-Real-IP, else "unknown"."""
    forwarded = headers.get("X-Forwarded-For", "")
    first = forwarded.split(",")[0].strip() if forwarded else ""
    if first:
        return first
    return headers.get("X-Real-IP", "").strip() or "unknown"


def _with_headers(response, headers: dict):
    for name, value in headers.items():
        response.headers[name] = value
    return response


def _info_url(code: str, page: str) -> str:
    return f"{current_app.config['BASE_URL']}/go/{code}/{page}"


def handle_redirect(code: str):
    client_id = client_identifier(request.headers)

    limit = get_rate_limiter().admit(client_id)
    rate_headers = limit.headers()

    if not limit.admitted:
        response = jsonify({"error": "Too many requests"})
        response.status_code = 429
        response.headers["Retry-After"] = str(limit.retry_after())
        return _with_headers(response, rate_headers)

    resolution, record = resolve(code, get_link_cache())

    if resolution is Resolution.NOT_FOUND:
        return _with_headers(redirect(_info_url(code, "not-found"), code=302), rate_headers)

    if resolution is Resolution.INACTIVE:
        return _with_headers(redirect(_info_url(code, "gone"), code=302), rate_headers)

    user_agent = request.headers.get("User-Agent", "")
    if is_bot(user_agent):
        current_app.logger.debug(f"Bot scan skipped for {code}")
    else:
        get_scan_recorder().detach(record.id, country_from_headers(request.headers), client_id)

    response = redirect(record.destination_url, code=302)
    response.headers["Cache-Control"] = "no-store, max-age=0"
    return _with_headers(response, rate_headers)
