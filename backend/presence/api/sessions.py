"""Venue token endpoints for session owners."""
from flask import Blueprint, g, request

from presence import limiter
from presence.models.event_session import EventSession
from presence.services import get_core
from presence.services.attendance_service import AttendanceQueries
from presence.utils.decorators import current_actor
from presence.utils.errors import AuthorizationError, NotFoundError, ValidationError
from presence.utils.helpers import success_response

sessions_bp = Blueprint('sessions', __name__)


def _managed_session(session_id: int) -> EventSession:
    session = EventSession.get_by_id(session_id)
    if session is None:
        raise NotFoundError(f"Session {session_id} not found")
    if not g.capabilities.can_manage_tokens(session):
        raise AuthorizationError("Only the session owner can manage its venue token")
    return session


@sessions_bp.route('/<int:session_id>/tokens', methods=['POST'])
@limiter.limit("30 per hour")
@current_actor
def rotate_token(session_id):
    """Rotate the venue token and return it with its QR image."""
    session = _managed_session(session_id)
    if not session.requires_qr:
        raise ValidationError("This session does not use venue tokens")
    if not session.is_running():
        raise ValidationError("Session is not active at this time")

    tokens = get_core().tokens
    token = tokens.issue(session.id)

    return success_response(
        data={
            'session_id': session.id,
            'token': token.secret,
            'qr_image': tokens.render_qr(token),
            'issued_at': token.issued_at.isoformat(),
            'valid_until': token.valid_until.isoformat(),
            'expires_in': get_core().settings.qr_rotation_interval
        },
        message='Venue token rotated successfully',
        status_code=201
    )


@sessions_bp.route('/<int:session_id>/tokens/active', methods=['GET'])
@current_actor
def active_token(session_id):
    """Validity window of the current token, without its secret."""
    session = _managed_session(session_id)
    token = get_core().tokens.active_token(session.id)
    if token is None:
        raise NotFoundError("No venue token has been issued for this session")
    return success_response(data=token.to_dict())


@sessions_bp.route('/<int:session_id>/attendance', methods=['GET'])
@current_actor
def session_attendance(session_id):
    """Attendance list of a session, optionally filtered by status."""
    session = EventSession.get_by_id(session_id)
    if session is None:
        raise NotFoundError(f"Session {session_id} not found")

    records = AttendanceQueries.session_attendance(
        session,
        g.capabilities,
        status=AttendanceQueries.parse_status(request.args.get('status'))
    )
    return success_response(data={
        'session_id': session.id,
        'count': len(records),
        'attendance': [record.to_dict() for record in records]
    })
