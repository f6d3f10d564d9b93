import datetime
import uuid
from ..extensions import db


class ShortLink(db.Model):
    __tablename__ = "short_links"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    short_code = db.Column(db.String(20), unique=True, nullable=False)
    destination_url = db.Column(db.String(2000), nullable=False)
    name = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Denormalized; only ever incremented by the scan recorder.
    scan_count = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.datetime.utcnow, nullable=False)

    user = db.relationship("User", backref=db.backref("links", lazy=True))
    scan_events = db.relationship(
        "ScanEvent",
        back_populates="link",
        lazy=True,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<ShortLink {self.short_code}>"
