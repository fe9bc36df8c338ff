"""Rotating venue token shown as a QR code at the session."""
import secrets

from presence import db
from presence.models.base import BaseModel


class VenueToken(BaseModel):
    """One rotation window of a session's QR secret.

    Rows are superseded by the next rotation, never deleted.
    """

    __tablename__ = 'venue_tokens'

    session_id = db.Column(db.Integer, db.ForeignKey('event_sessions.id'), nullable=False, index=True)
    secret = db.Column(db.String(64), unique=True, nullable=False, index=True)
    issued_at = db.Column(db.DateTime, nullable=False)
    valid_until = db.Column(db.DateTime, nullable=False)
    superseded_at = db.Column(db.DateTime, nullable=True)

    @staticmethod
    def generate_secret() -> str:
        """Generate an opaque token secret."""
        return secrets.token_urlsafe(32)

    @property
    def is_superseded(self) -> bool:
        return self.superseded_at is not None

    def to_dict(self, include_secret: bool = False):
        """Convert to dictionary."""
        exclude = [] if include_secret else ['secret']
        return super().to_dict(exclude=exclude)
