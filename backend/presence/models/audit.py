"""Append-only audit trail of attendance state changes."""
from enum import Enum

from sqlalchemy import event
from sqlalchemy.orm import object_session

from presence import db
from presence.models.attendance import AttendanceStatus
from presence.models.base import BaseModel, enum_values
from presence.utils.errors import ImmutableRecordError


class AuditAction(Enum):
    VERIFICATION = 'verification'
    OVERRIDE = 'override'


class AuditEntry(BaseModel):
    """One state-changing action on an AttendanceRecord."""

    __tablename__ = 'attendance_audit_entries'

    attendance_id = db.Column(
        db.Integer,
        db.ForeignKey('attendance_records.id'),
        nullable=False,
        index=True
    )
    actor_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    action = db.Column(
        db.Enum(AuditAction, values_callable=enum_values, name='audit_action'),
        nullable=False
    )
    previous_status = db.Column(
        db.Enum(AttendanceStatus, values_callable=enum_values, name='audit_previous_status'),
        nullable=False
    )
    new_status = db.Column(
        db.Enum(AttendanceStatus, values_callable=enum_values, name='audit_new_status'),
        nullable=False
    )
    effective_status = db.Column(
        db.Enum(AttendanceStatus, values_callable=enum_values, name='audit_effective_status'),
        nullable=True
    )
    reason = db.Column(db.Text, nullable=True)
    evidence = db.Column(db.JSON, nullable=True)

    def __repr__(self):
        return f'<AuditEntry {self.attendance_id} {self.previous_status.value}->{self.new_status.value}>'


@event.listens_for(AuditEntry, 'before_update')
def _refuse_update(mapper, connection, target):
    session = object_session(target)
    if session is not None and not session.is_modified(target, include_collections=False):
        return
    raise ImmutableRecordError(f"Audit entry {target.id} is append-only")


@event.listens_for(AuditEntry, 'before_delete')
def _refuse_delete(mapper, connection, target):
    raise ImmutableRecordError(f"Audit entry {target.id} is append-only")
