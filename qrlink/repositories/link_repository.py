import enum
import json
from dataclasses import dataclass
from typing import Optional

from ..models.short_link import ShortLink


class Resolution(enum.Enum):
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    ACTIVE = "active"


@dataclass(frozen=True)
class RoutingRecord:
    id: str
    destination_url: str
    is_active: bool

    @classmethod
    def from_link(cls, link: ShortLink) -> "RoutingRecord":
        return cls(id=link.id, destination_url=link.destination_url, is_active=bool(link.is_active))

    @property
    def resolution(self) -> Resolution:
        return Resolution.ACTIVE if self.is_active else Resolution.INACTIVE


class LinkCache:
    """Short code -> routing record cache in Redis.

    Every operation is best-effort: a missing client or a Redis error behaves
    like a cache miss.
    """

    def __init__(self, client=None, ttl: int = 3600, logger=None):
        self.client = client
        self.ttl = ttl
        self.logger = logger

    @staticmethod
    def _key(code: str) -> str:
        return f"link:{code}"

    def get(self, code: str) -> Optional[RoutingRecord]:
        if not self.client:
            return None
        try:
            cached = self.client.get(self._key(code))
            if not cached:
                return None
            payload = json.loads(cached)
            return RoutingRecord(
                id=payload["id"],
                destination_url=payload["destinationUrl"],
                is_active=bool(payload["isActive"]),
            )
        except Exception as exc:
            self._warn(f"Link cache read failed for {code}: {exc}")
            return None

    def set(self, code: str, record: RoutingRecord) -> None:
        if not self.client:
            return
        try:
            self.client.setex(
                self._key(code),
                self.ttl,
                json.dumps({
                    "id": record.id,
                    "destinationUrl": record.destination_url,
                    "isActive": record.is_active,
                }),
            )
        except Exception as exc:
            self._warn(f"Link cache write failed for {code}: {exc}")

    def delete(self, code: str) -> None:
        if not self.client:
            return
        try:
            self.client.delete(self._key(code))
        except Exception as exc:
            self._warn(f"Link cache delete failed for {code}: {exc}")

    def _warn(self, message):
        if self.logger:
            self.logger.warning(message)


def get_link_by_id(link_id: str) -> Optional[ShortLink]:
    return ShortLink.query.filter_by(id=link_id).first()


def get_link_by_code(code: str) -> Optional[ShortLink]:
    return ShortLink.query.filter_by(short_code=code).first()


def resolve(code: str, cache: LinkCache | None = None) -> tuple[Resolution, Optional[RoutingRecord]]:
    """Look up the routing record for a short code.

    Returns ``(Resolution.NOT_FOUND, None)`` for unknown codes, otherwise the
    record together with whether it is active. Not-found results are not cached.
    """
    record = cache.get(code) if cache else None

    if record is None:
        link = get_link_by_code(code)
        if not link:
            return Resolution.NOT_FOUND, None
        record = RoutingRecord.from_link(link)
        if cache:
            cache.set(code, record)

    return record.resolution, record
