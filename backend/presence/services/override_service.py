"""Administrative override of attendance decisions."""
import logging
from datetime import datetime
from typing import List, Union

from sqlalchemy.exc import SQLAlchemyError

from presence import db
from presence.models.attendance import AttendanceRecord, AttendanceStatus, EFFECTIVE_STATUSES
from presence.models.audit import AuditAction, AuditEntry
from presence.services.authorization import CapabilitySet
from presence.utils.errors import AuthorizationError, NotFoundError, ValidationError
from presence.utils.validators import Validator

logger = logging.getLogger(__name__)


class OverrideManager:
    """
    Applies an administrator's determination to an attendance record.

    The record becomes ``overridden`` and keeps the chosen outcome in
    ``effective_status``. Evidence columns and ``verified_at`` are left as
    they were; the automatic decision stays in the audit trail.
    """

    def __init__(self, capabilities: CapabilitySet):
        self.capabilities = capabilities

    @staticmethod
    def parse_status(new_status: Union[str, AttendanceStatus]) -> AttendanceStatus:
        try:
            status = AttendanceStatus(new_status)
        except ValueError:
            status = None
        if status not in EFFECTIVE_STATUSES:
            allowed = ', '.join(s.value for s in EFFECTIVE_STATUSES)
            raise ValidationError(f"Override status must be one of: {allowed}")
        return status

    def override(
        self,
        attendance_id: int,
        actor_id: int,
        new_status: Union[str, AttendanceStatus],
        reason: str,
        now: datetime = None
    ) -> AttendanceRecord:
        record = AttendanceRecord.get_by_id(attendance_id)
        if record is None:
            raise NotFoundError(f"Attendance record {attendance_id} not found")

        if actor_id != self.capabilities.actor_id or not self.capabilities.can_override(record.session):
            logger.warning("User %s denied override of attendance %s", actor_id, attendance_id)
            raise AuthorizationError("Override permission required for this session")

        effective = self.parse_status(new_status)
        reason = Validator.validate_reason(reason)
        now = now or datetime.utcnow()

        previous_status = record.status
        entry = AuditEntry(
            actor_id=actor_id,
            action=AuditAction.OVERRIDE,
            previous_status=previous_status,
            new_status=AttendanceStatus.OVERRIDDEN,
            effective_status=effective,
            reason=reason,
            evidence={
                'previous_effective_status': record.effective_status.value if record.effective_status else None,
                'rejection_reason': record.rejection_reason
            }
        )
        entry.attendance = record

        record.status = AttendanceStatus.OVERRIDDEN
        record.effective_status = effective
        record.overridden_by = actor_id
        record.overridden_at = now
        record.override_reason = reason

        try:
            db.session.add(entry)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        logger.info("Attendance %s overridden by user %s: %s -> %s",
                    record.id, actor_id, previous_status.value, effective.value)
        return record

    @staticmethod
    def history(attendance_id: int) -> List[AuditEntry]:
        """Audit entries of a record, oldest first."""
        if AttendanceRecord.get_by_id(attendance_id) is None:
            raise NotFoundError(f"Attendance record {attendance_id} not found")
        return (AuditEntry.query
                .filter_by(attendance_id=attendance_id)
                .order_by(AuditEntry.id)
                .all())
