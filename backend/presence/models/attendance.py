"""Attendance model with verification details."""
from enum import Enum

from presence import db
from presence.models.base import BaseModel, enum_values


class AttendanceStatus(Enum):
    """Attendance status enumeration."""
    PENDING = 'pending'
    VERIFIED = 'verified'
    REJECTED = 'rejected'
    OVERRIDDEN = 'overridden'


class VerificationMethod(Enum):
    """Highest-assurance factor evaluated for a record."""
    QR = 'qr'
    GPS = 'gps'
    QR_GPS = 'qr_gps'
    FACE = 'face'
    WEBAUTHN = 'webauthn'


# Statuses an override may assign as the effective outcome
EFFECTIVE_STATUSES = (AttendanceStatus.VERIFIED, AttendanceStatus.REJECTED)


class AttendanceRecord(BaseModel):
    """One verification attempt of a user at a session."""

    __tablename__ = 'attendance_records'
    __table_args__ = (
        db.Index(
            'uq_attendance_user_session_active',
            'user_id', 'session_id',
            unique=True,
            sqlite_where=db.text("status != 'overridden'"),
            postgresql_where=db.text("status != 'overridden'"),
        ),
        db.CheckConstraint(
            '(face_match IS NULL) = (face_match_score IS NULL)',
            name='ck_attendance_face_pair'
        ),
        db.CheckConstraint(
            '(gps_valid IS NULL) = (distance_from_venue IS NULL)',
            name='ck_attendance_gps_pair'
        ),
        db.CheckConstraint(
            'distance_from_venue IS NULL OR distance_from_venue >= 0',
            name='ck_attendance_distance_non_negative'
        ),
        db.CheckConstraint(
            'face_match_score IS NULL OR (face_match_score >= 0 AND face_match_score <= 100)',
            name='ck_attendance_score_range'
        ),
    )

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey('event_sessions.id'), nullable=False, index=True)
    venue_token_id = db.Column(db.Integer, db.ForeignKey('venue_tokens.id'), nullable=True)

    status = db.Column(
        db.Enum(AttendanceStatus, values_callable=enum_values, name='attendance_status'),
        nullable=False,
        default=AttendanceStatus.PENDING
    )
    # Administrator's determination once overridden
    effective_status = db.Column(
        db.Enum(AttendanceStatus, values_callable=enum_values, name='attendance_effective_status'),
        nullable=True
    )
    verification_method = db.Column(
        db.Enum(VerificationMethod, values_callable=enum_values, name='verification_method'),
        nullable=True
    )
    rejection_reason = db.Column(db.Text, nullable=True)

    # Biometric factor
    face_match_score = db.Column(db.Float, nullable=True)
    face_match = db.Column(db.Boolean, nullable=True)

    # Location factor
    gps_valid = db.Column(db.Boolean, nullable=True)
    distance_from_venue = db.Column(db.Float, nullable=True)  # meters
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    location_accuracy = db.Column(db.Float, nullable=True)  # meters, as reported
    location_accuracy_level = db.Column(db.String(10), nullable=True)  # high, medium, low

    # Hardware assertion factor
    webauthn_used = db.Column(db.Boolean, default=False, nullable=False)
    webauthn_credential_id = db.Column(db.String(255), nullable=True)

    verified_at = db.Column(db.DateTime, nullable=True)

    # Override
    overridden_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    overridden_at = db.Column(db.DateTime, nullable=True)
    override_reason = db.Column(db.Text, nullable=True)

    audit_entries = db.relationship(
        'AuditEntry',
        backref='attendance',
        lazy='dynamic',
        order_by='AuditEntry.id',
        passive_deletes='all'
    )

    @property
    def is_pending(self) -> bool:
        return self.status == AttendanceStatus.PENDING

    @property
    def is_overridden(self) -> bool:
        return self.status == AttendanceStatus.OVERRIDDEN

    @property
    def outcome(self) -> AttendanceStatus:
        """Status downstream consumers should act on."""
        if self.is_overridden:
            return self.effective_status
        return self.status

    def to_dict(self, exclude: list = None) -> dict:
        """Convert to dictionary; distance is rounded for display only."""
        result = super().to_dict(exclude=exclude)
        if self.distance_from_venue is not None and 'distance_from_venue' in result:
            result['distance_from_venue'] = round(self.distance_from_venue, 2)
        if self.face_match_score is not None and 'face_match_score' in result:
            result['face_match_score'] = round(self.face_match_score, 2)
        outcome = self.outcome
        result['outcome'] = outcome.value if outcome else None
        return result

    def __repr__(self):
        return f'<AttendanceRecord {self.user_id}-{self.session_id}>'
