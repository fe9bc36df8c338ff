"""Biometric enrollment submission and review."""
import logging
from datetime import datetime
from typing import List, Optional

from presence import db
from presence.models.enrollment import BiometricEnrollment, EnrollmentStatus
from presence.models.user import User
from presence.services.authorization import CapabilitySet
from presence.services.biometric import BiometricMatcher, DescriptorCipher
from presence.utils.errors import AuthorizationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class EnrollmentService:
    """Stores descriptors encrypted and hands out the approved baseline."""

    def __init__(self, cipher: DescriptorCipher):
        self.cipher = cipher

    def submit(self, user_id: int, descriptor) -> BiometricEnrollment:
        """Store a new pending enrollment, superseding older pending ones."""
        descriptor = BiometricMatcher.validate(descriptor)
        if User.get_by_id(user_id) is None:
            raise NotFoundError(f"User {user_id} not found")

        (BiometricEnrollment.query
         .filter_by(user_id=user_id, enrollment_status=EnrollmentStatus.PENDING)
         .update({'enrollment_status': EnrollmentStatus.REJECTED}, synchronize_session='fetch'))

        enrollment = BiometricEnrollment(
            user_id=user_id,
            encrypted_descriptor=self.cipher.encrypt(descriptor),
            encryption_key_id=self.cipher.key_id,
            enrollment_status=EnrollmentStatus.PENDING
        )
        db.session.add(enrollment)
        db.session.commit()
        logger.info("Face enrollment %s submitted for user %s", enrollment.id, user_id)
        return enrollment

    def review(
        self,
        enrollment_id: int,
        capabilities: CapabilitySet,
        approve: bool
    ) -> BiometricEnrollment:
        """Approve or reject a pending enrollment."""
        enrollment = BiometricEnrollment.get_by_id(enrollment_id)
        if enrollment is None:
            raise NotFoundError(f"Enrollment {enrollment_id} not found")
        if not capabilities.can_review_enrollment(enrollment.user):
            raise AuthorizationError("Enrollment review permission required")
        if enrollment.enrollment_status != EnrollmentStatus.PENDING:
            raise ValidationError("Only pending enrollments can be reviewed")

        now = datetime.utcnow()
        if approve:
            # One approved baseline per user
            (BiometricEnrollment.query
             .filter(BiometricEnrollment.user_id == enrollment.user_id,
                     BiometricEnrollment.enrollment_status == EnrollmentStatus.APPROVED,
                     BiometricEnrollment.id != enrollment.id)
             .update({'enrollment_status': EnrollmentStatus.REJECTED}, synchronize_session='fetch'))

        enrollment.enrollment_status = EnrollmentStatus.APPROVED if approve else EnrollmentStatus.REJECTED
        enrollment.reviewed_by = capabilities.actor_id
        enrollment.reviewed_at = now
        db.session.commit()

        logger.info("Face enrollment %s %s by user %s", enrollment.id,
                    enrollment.enrollment_status.value, capabilities.actor_id)
        return enrollment

    @staticmethod
    def approved_enrollment(user_id: int) -> Optional[BiometricEnrollment]:
        return (BiometricEnrollment.query
                .filter_by(user_id=user_id, enrollment_status=EnrollmentStatus.APPROVED)
                .order_by(BiometricEnrollment.reviewed_at.desc())
                .first())

    def load_baseline(self, user_id: int) -> Optional[List[float]]:
        """Decrypted descriptor of the approved enrollment, if any."""
        enrollment = self.approved_enrollment(user_id)
        if enrollment is None:
            return None
        return self.cipher.decrypt(enrollment.encrypted_descriptor)
