"""
Scan analytics: date-range parsing, aggregation and paged CSV export.

Timestamps are stored as naive UTC datetimes; every bound built here is naive
UTC as well so comparisons stay in the database.
"""

import csv
import datetime
import io
import re
from dataclasses import dataclass
from typing import Iterator, Optional

from sqlalchemy import func

from ..extensions import db
from ..models.scan_event import ScanEvent
from ..repositories.link_repository import get_link_by_id
from ..utils.error_handler import (
    Forbidden,
    InvalidDateFormat,
    InvalidDateRange,
    InvalidDateValue,
    NotFound,
    ValidationError,
)

DATE_RE = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")
LINK_ID_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)
DEFAULT_PAGE_SIZE = 1000
CSV_HEADER = ("timestamp", "country")


@dataclass(frozen=True)
class AnalyticsDateRange:
    start: Optional[datetime.datetime] = None  # inclusive
    to_exclusive: Optional[datetime.datetime] = None

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.to_exclusive is None


def to_iso_utc(value: datetime.datetime) -> str:
    """Render as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_date(value: str) -> datetime.datetime:
    match = DATE_RE.fullmatch(value)
    if not match:
        raise InvalidDateFormat()

    year, month, day = (int(part) for part in match.groups())
    try:
        parsed = datetime.datetime(year, month, day)
    except ValueError:
        raise InvalidDateValue()

    # datetime() rejects impossible dates already; the round-trip check keeps
    # the contract explicit.
    if (parsed.year, parsed.month, parsed.day) != (year, month, day):
        raise InvalidDateValue()
    return parsed


def parse_analytics_date_range(from_param: str | None, to_param: str | None) -> AnalyticsDateRange:
    start = parse_date(from_param) if from_param else None
    to_inclusive = parse_date(to_param) if to_param else None

    if start and to_inclusive and start > to_inclusive:
        raise InvalidDateRange()

    to_exclusive = to_inclusive + datetime.timedelta(days=1) if to_inclusive else None
    return AnalyticsDateRange(start=start, to_exclusive=to_exclusive)


def build_scan_events_filters(link_id: str, date_range: AnalyticsDateRange) -> list:
    filters = [ScanEvent.link_id == link_id]
    if date_range.start is not None:
        filters.append(ScanEvent.scanned_at >= date_range.start)
    if date_range.to_exclusive is not None:
        filters.append(ScanEvent.scanned_at < date_range.to_exclusive)
    return filters


def get_owned_link(link_id: str, user_id):
    """Validate the id, load the link and check ownership."""
    # hyphenated form only; uuid.UUID() also takes bare hex, braces and urns
    if not isinstance(link_id, str) or not LINK_ID_RE.fullmatch(link_id):
        raise ValidationError("Invalid link ID")

    link = get_link_by_id(link_id.lower())
    if not link:
        raise NotFound("Link not found")
    if link.user_id != user_id:
        raise Forbidden()
    return link


def aggregate(link_id: str, date_range: AnalyticsDateRange) -> dict:
    filters = build_scan_events_filters(link_id, date_range)

    total = db.session.query(func.count(ScanEvent.id)).filter(*filters).scalar() or 0

    day = func.date(ScanEvent.scanned_at)
    by_day = (
        db.session.query(day.label("date"), func.count(ScanEvent.id).label("count"))
        .filter(*filters)
        .group_by(day)
        .order_by(day.asc())
        .all()
    )

    scans = func.count(ScanEvent.id)
    by_country = (
        db.session.query(ScanEvent.country, scans.label("count"))
        .filter(*filters, ScanEvent.country.isnot(None))
        .group_by(ScanEvent.country)
        .order_by(scans.desc(), ScanEvent.country.asc())
        .all()
    )

    return {
        "totalScans": int(total),
        "scansByDay": [{"date": str(row.date), "count": int(row.count)} for row in by_day],
        "scansByCountry": [{"country": row.country, "count": int(row.count)} for row in by_country],
    }


def iter_scan_event_pages(link_id: str, date_range: AnalyticsDateRange,
                          page_size: int = DEFAULT_PAGE_SIZE) -> Iterator[list]:
    """Yield pages of ``(scanned_at, country)`` rows, oldest first.

    Stops after the first page shorter than page_size.
    """
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")

    filters = build_scan_events_filters(link_id, date_range)
    offset = 0

    while True:
        rows = (
            db.session.query(ScanEvent.scanned_at, ScanEvent.country)
            .filter(*filters)
            .order_by(ScanEvent.scanned_at.asc(), ScanEvent.id.asc())
            .limit(page_size)
            .offset(offset)
            .all()
        )
        if rows:
            yield rows
        if len(rows) < page_size:
            return
        offset += len(rows)


def _csv_chunk(rows) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerows(rows)
    return buf.getvalue()


def export_csv(link_id: str, date_range: AnalyticsDateRange,
               page_size: int = DEFAULT_PAGE_SIZE) -> Iterator[str]:
    """Stream the CSV export: the header, then one chunk per page."""
    yield _csv_chunk([CSV_HEADER])

    for page in iter_scan_event_pages(link_id, date_range, page_size):
        yield _csv_chunk((to_iso_utc(scanned_at), country or "") for scanned_at, country in page)


def export_filename(short_code: str) -> str:
    return f"analytics-{short_code}.csv"
