"""User model for actors of the verification flow."""
from enum import Enum

from presence import db
from presence.models.base import BaseModel, enum_values


class UserRole(Enum):
    """User roles enumeration."""
    STUDENT = 'student'
    TEACHER = 'teacher'
    COORDINATOR = 'coordinator'
    ADMIN = 'admin'
    SUPER_ADMIN = 'super_admin'


class User(BaseModel):
    """User model for attendees, session owners and administrators."""

    __tablename__ = 'users'

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    role = db.Column(
        db.Enum(UserRole, values_callable=enum_values, name='user_role'),
        nullable=False,
        default=UserRole.STUDENT
    )
    # None means the user is not bound to an organization
    organization_id = db.Column(db.Integer, nullable=True, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    attendance_records = db.relationship(
        'AttendanceRecord',
        backref='user',
        lazy='dynamic',
        foreign_keys='AttendanceRecord.user_id'
    )

    def is_admin(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.SUPER_ADMIN)

    def __repr__(self) -> str:
        return f'<User {self.email}>'
