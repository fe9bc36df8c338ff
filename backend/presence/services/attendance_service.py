"""Read-only attendance listings."""
from datetime import datetime
from typing import List, Optional

from presence.models.attendance import AttendanceRecord, AttendanceStatus
from presence.models.event_session import EventSession
from presence.services.authorization import CapabilitySet, Permission
from presence.utils.errors import AuthorizationError, ValidationError
from presence.utils.validators import Validator


class AttendanceQueries:
    """History, per-session and pending listings over attendance records."""

    # =================== FILTER PARSING ===================

    @staticmethod
    def parse_id(value: Optional[str], name: str) -> Optional[int]:
        if value is None or value == '':
            return None
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be an integer")
        if not Validator.is_valid_id(number):
            raise ValidationError(f"{name} must be a positive integer")
        return number

    @staticmethod
    def parse_date(value: Optional[str], name: str) -> Optional[datetime]:
        """ISO 8601 date or datetime query parameter."""
        if value is None or value == '':
            return None
        try:
            return datetime.fromisoformat(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be an ISO 8601 date")

    @staticmethod
    def parse_status(value: Optional[str]) -> Optional[AttendanceStatus]:
        if value is None or value == '':
            return None
        try:
            return AttendanceStatus(value)
        except ValueError:
            allowed = ', '.join(s.value for s in AttendanceStatus)
            raise ValidationError(f"Status must be one of: {allowed}")

    # =================== LISTINGS ===================

    @staticmethod
    def user_history(
        user_id: int,
        session_id: int = None,
        start: datetime = None,
        end: datetime = None
    ) -> List[AttendanceRecord]:
        """A user's records, most recently decided first."""
        query = AttendanceRecord.query.filter_by(user_id=user_id)
        if session_id is not None:
            query = query.filter_by(session_id=session_id)
        if start is not None:
            query = query.filter(AttendanceRecord.verified_at >= start)
        if end is not None:
            query = query.filter(AttendanceRecord.verified_at <= end)
        return query.order_by(AttendanceRecord.verified_at.desc(), AttendanceRecord.id.desc()).all()

    @staticmethod
    def session_attendance(
        session: EventSession,
        capabilities: CapabilitySet,
        status: AttendanceStatus = None
    ) -> List[AttendanceRecord]:
        """Records of a session, for its owner or anyone able to override them."""
        if session.owner_id != capabilities.actor_id and not capabilities.can_override(session):
            raise AuthorizationError("You cannot view attendance for this session")

        query = AttendanceRecord.query.filter_by(session_id=session.id)
        if status is not None:
            query = query.filter_by(status=status)
        return query.order_by(AttendanceRecord.verified_at.desc(), AttendanceRecord.id.desc()).all()

    @staticmethod
    def pending(capabilities: CapabilitySet, session_id: int = None) -> List[AttendanceRecord]:
        """Undecided records within the actor's override scope, newest first."""
        if not capabilities.has(Permission.OVERRIDE_ATTENDANCE):
            raise AuthorizationError("Override permission required")

        query = AttendanceRecord.query.filter_by(status=AttendanceStatus.PENDING)
        if not capabilities.is_global:
            if capabilities.organization_id is None:
                return []
            query = (query
                     .join(EventSession, AttendanceRecord.session_id == EventSession.id)
                     .filter(EventSession.organization_id == capabilities.organization_id))
        if session_id is not None:
            query = query.filter(AttendanceRecord.session_id == session_id)
        return query.order_by(AttendanceRecord.created_at.desc(), AttendanceRecord.id.desc()).all()
