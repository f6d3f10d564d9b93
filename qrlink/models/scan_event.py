import datetime
import uuid
from ..extensions import db


class ScanEvent(db.Model):
    """Append-only scan log. Rows are never updated."""

    __tablename__ = "scan_events"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    link_id = db.Column(
        db.String(36),
        db.ForeignKey("short_links.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    scanned_at = db.Column(db.DateTime, default=datetime.datetime.utcnow, nullable=False, index=True)
    country = db.Column(db.String(2), nullable=True)  # ISO 3166-1 alpha-2
    ip_hash = db.Column(db.String(64), nullable=True)  # sha256 hex

    link = db.relationship("ShortLink", back_populates="scan_events")

    def __repr__(self):
        return f"<ScanEvent {self.link_id} @ {self.scanned_at}>"
