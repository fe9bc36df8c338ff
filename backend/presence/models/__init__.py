"""Models package with all models."""
from .base import BaseModel
from .user import User, UserRole
from .event_session import EventSession
from .venue_token import VenueToken
from .enrollment import BiometricEnrollment, EnrollmentStatus
from .attendance import AttendanceRecord, AttendanceStatus, VerificationMethod
from .audit import AuditEntry, AuditAction

__all__ = [
    'BaseModel', 'User', 'UserRole', 'EventSession', 'VenueToken',
    'BiometricEnrollment', 'EnrollmentStatus',
    'AttendanceRecord', 'AttendanceStatus', 'VerificationMethod',
    'AuditEntry', 'AuditAction'
]
