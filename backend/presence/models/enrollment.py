"""Biometric enrollment holding a user's baseline face descriptor."""
from enum import Enum

from presence import db
from presence.models.base import BaseModel, enum_values


class EnrollmentStatus(Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class BiometricEnrollment(BaseModel):
    """Encrypted 128-d descriptor awaiting or holding approval."""

    __tablename__ = 'biometric_enrollments'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    encrypted_descriptor = db.Column(db.Text, nullable=False)
    encryption_key_id = db.Column(db.String(20), nullable=False, default='v1')
    enrollment_status = db.Column(
        db.Enum(EnrollmentStatus, values_callable=enum_values, name='enrollment_status'),
        nullable=False,
        default=EnrollmentStatus.PENDING,
        index=True
    )
    reviewed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship('User', foreign_keys=[user_id])

    @property
    def is_approved(self) -> bool:
        return self.enrollment_status == EnrollmentStatus.APPROVED

    def to_dict(self, exclude: list = None) -> dict:
        """Never expose the descriptor, even encrypted."""
        exclude = (exclude or []) + ['encrypted_descriptor']
        return super().to_dict(exclude=exclude)
