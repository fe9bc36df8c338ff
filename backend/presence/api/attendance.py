"""Attendance API endpoints with multi-factor verification."""
from flask import Blueprint, g, request

from presence import limiter
from presence.models.attendance import AttendanceRecord
from presence.services import get_core
from presence.services.attendance_service import AttendanceQueries
from presence.services.override_service import OverrideManager
from presence.services.verification_service import VerificationRequest
from presence.utils.decorators import current_actor
from presence.utils.errors import AuthorizationError, NotFoundError
from presence.utils.helpers import get_json_body, success_response

attendance_bp = Blueprint('attendance', __name__)

STATUS_MESSAGES = {
    'verified': 'Attendance verified successfully',
    'rejected': 'Attendance rejected',
}


def _visible_record(attendance_id: int) -> AttendanceRecord:
    """Record readable by its owner or by someone able to override it."""
    record = AttendanceRecord.get_by_id(attendance_id)
    if record is None:
        raise NotFoundError(f"Attendance record {attendance_id} not found")
    if record.user_id != g.current_user.id and not g.capabilities.can_override(record.session):
        raise AuthorizationError("You cannot view this attendance record")
    return record


@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')


@attendance_bp.route('/verify', methods=['POST'])
@limiter.limit("30 per minute")
@current_actor
def verify():
    """Verify presence of the current user and record the decision."""
    request_data = VerificationRequest.from_payload(g.current_user.id, get_json_body())
    record = get_core().orchestrator.verify(request_data)

    status = record.status.value
    return success_response(
        data={
            'attendance': record.to_dict(),
            'reason': record.rejection_reason
        },
        message=STATUS_MESSAGES.get(status, 'Attendance processed'),
        status_code=201
    )


@attendance_bp.route('/history', methods=['GET'])
@current_actor
def history():
    """Attendance history of the current user."""
    records = AttendanceQueries.user_history(
        g.current_user.id,
        session_id=AttendanceQueries.parse_id(request.args.get('session_id'), 'session_id'),
        start=AttendanceQueries.parse_date(request.args.get('start_date'), 'start_date'),
        end=AttendanceQueries.parse_date(request.args.get('end_date'), 'end_date')
    )
    return success_response(data=[record.to_dict() for record in records])


@attendance_bp.route('/pending', methods=['GET'])
@current_actor
def pending():
    """Pending records awaiting a decision, within the actor's scope."""
    records = AttendanceQueries.pending(
        g.capabilities,
        session_id=AttendanceQueries.parse_id(request.args.get('session_id'), 'session_id')
    )
    return success_response(data=[record.to_dict() for record in records])


@attendance_bp.route('/<int:attendance_id>', methods=['GET'])
@current_actor
def get_attendance(attendance_id):
    """Attendance record with its audit trail."""
    record = _visible_record(attendance_id)
    return success_response(data={
        'attendance': record.to_dict(),
        'audit': [entry.to_dict() for entry in OverrideManager.history(attendance_id)]
    })


@attendance_bp.route('/<int:attendance_id>/audit', methods=['GET'])
@current_actor
def get_audit(attendance_id):
    """Audit trail of a record, oldest first."""
    _visible_record(attendance_id)
    return success_response(data=[entry.to_dict() for entry in OverrideManager.history(attendance_id)])


@attendance_bp.route('/<int:attendance_id>/override', methods=['POST'])
@current_actor
def override_attendance(attendance_id):
    """Apply an administrator's determination to a record."""
    data = get_json_body()
    manager = OverrideManager(g.capabilities)
    record = manager.override(
        attendance_id,
        g.current_user.id,
        data.get('status'),
        data.get('reason')
    )
    return success_response(
        data={'attendance': record.to_dict()},
        message='Attendance status overridden successfully'
    )
