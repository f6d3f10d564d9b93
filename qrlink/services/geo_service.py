import re
from typing import Optional

import requests
from flask import current_app

_COUNTRY_RE = re.compile(r"^[A-Za-z]{2}$")

# Placeholders some platforms send when the location is unknown.
UNKNOWN_COUNTRIES = {"XX", "T1"}


def normalize_country(value: str | None) -> Optional[str]:
    """Return an upper-case ISO 3166-1 alpha-2 code, or None."""
    if not value:
        return None
    value = value.strip()
    if not _COUNTRY_RE.match(value):
        return None
    value = value.upper()
    return None if value in UNKNOWN_COUNTRIES else value


def country_from_headers(headers) -> Optional[str]:
    header = current_app.config.get("GEO_COUNTRY_HEADER", "CF-IPCountry")
    return normalize_country(headers.get(header))


def lookup_country(ip: str) -> Optional[str]:
    """Resolve a country code through GEO_LOOKUP_URL (ipwho.is compatible).

    Returns None when the lookup is disabled, the address is unknown or the
    service fails.
    """
    base_url = current_app.config.get("GEO_LOOKUP_URL")
    if not base_url or not ip or ip == "unknown":
        return None

    try:
        resp = requests.get(f"{base_url.rstrip('/')}/{ip}", timeout=3)
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        current_app.logger.warning(f"Geo lookup failed: {exc}")
        return None

    if not data.get("success"):
        return None
    return normalize_country(data.get("country_code") or data.get("countryCode"))
