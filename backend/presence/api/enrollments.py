"""Face enrollment endpoints."""
from flask import Blueprint, g

from presence.services import get_core
from presence.utils.decorators import current_actor
from presence.utils.errors import ValidationError
from presence.utils.helpers import get_json_body, success_response

enrollments_bp = Blueprint('enrollments', __name__)


@enrollments_bp.route('', methods=['POST'])
@current_actor
def submit_enrollment():
    """Submit the current user's face descriptor for approval."""
    data = get_json_body()
    if 'face_descriptor' not in data:
        raise ValidationError("Missing required field: face_descriptor")

    enrollment = get_core().enrollments.submit(g.current_user.id, data['face_descriptor'])
    return success_response(
        data=enrollment.to_dict(),
        message='Face enrollment submitted and pending approval',
        status_code=201
    )


@enrollments_bp.route('/<int:enrollment_id>/review', methods=['POST'])
@current_actor
def review_enrollment(enrollment_id):
    """Approve or reject a pending enrollment."""
    data = get_json_body()
    decision = data.get('decision')
    if decision not in ('approve', 'reject'):
        raise ValidationError("Decision must be 'approve' or 'reject'")

    enrollment = get_core().enrollments.review(
        enrollment_id, g.capabilities, approve=decision == 'approve'
    )
    return success_response(
        data=enrollment.to_dict(),
        message=f"Face enrollment {enrollment.enrollment_status.value}"
    )
