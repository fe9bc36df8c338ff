"""Event session with venue location and evidence requirements."""
from datetime import datetime

from presence import db
from presence.models.base import BaseModel


class EventSession(BaseModel):
    """A scheduled session attendees verify their presence at."""

    __tablename__ = 'event_sessions'

    title = db.Column(db.String(255), nullable=False)
    organization_id = db.Column(db.Integer, nullable=True, index=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    start_time = db.Column(db.DateTime, nullable=True)
    end_time = db.Column(db.DateTime, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Venue geofence
    venue_latitude = db.Column(db.Float, nullable=True)
    venue_longitude = db.Column(db.Float, nullable=True)
    radius_meters = db.Column(db.Integer, nullable=True)

    # Evidence the automatic decision insists on
    requires_qr = db.Column(db.Boolean, default=True, nullable=False)
    enforce_location = db.Column(db.Boolean, default=True, nullable=False)
    requires_face = db.Column(db.Boolean, default=False, nullable=False)
    requires_webauthn = db.Column(db.Boolean, default=False, nullable=False)

    owner = db.relationship('User', foreign_keys=[owner_id])
    tokens = db.relationship('VenueToken', backref='session', lazy='dynamic')
    attendance_records = db.relationship('AttendanceRecord', backref='session', lazy='dynamic')

    def has_venue(self) -> bool:
        return self.venue_latitude is not None and self.venue_longitude is not None

    def is_running(self, now: datetime = None) -> bool:
        """Active and, when a schedule is set, within it."""
        now = now or datetime.utcnow()
        if not self.is_active:
            return False
        if self.start_time and now < self.start_time:
            return False
        if self.end_time and now > self.end_time:
            return False
        return True

    def __repr__(self):
        return f'<EventSession {self.title}>'
