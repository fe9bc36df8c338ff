"""Multi-factor attendance verification."""
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from presence import db
from presence.config import VerificationSettings
from presence.models.attendance import AttendanceRecord, AttendanceStatus, VerificationMethod
from presence.models.audit import AuditAction, AuditEntry
from presence.models.event_session import EventSession
from presence.models.user import User
from presence.services.biometric import BiometricMatcher
from presence.services.enrollment_service import EnrollmentService
from presence.services.geofence import GeofenceValidator
from presence.services.token_service import TokenValidator
from presence.utils.errors import DuplicateAttendanceError, NotFoundError, ValidationError
from presence.utils.validators import Validator

logger = logging.getLogger(__name__)


class Factor:
    """Evidence factor names."""
    TOKEN = 'token'
    GEOFENCE = 'geofence'
    BIOMETRIC = 'biometric'
    WEBAUTHN = 'webauthn'


class Rejection:
    """Reasons recorded when a non-token factor fails."""
    OUTSIDE_GEOFENCE = 'outside_geofence'
    FACE_MISMATCH = 'face_mismatch'
    FACE_SCORE_LOW = 'face_score_below_threshold'
    ENROLLMENT_UNAVAILABLE = 'enrollment_unavailable'
    WEBAUTHN_FAILED = 'webauthn_failed'


@dataclass(frozen=True)
class HardwareAssertion:
    """Pre-verified hardware assertion handed over by the caller."""
    succeeded: bool
    credential_id: Optional[str] = None


@dataclass
class VerificationRequest:
    """Already-extracted evidence for one verification attempt."""
    user_id: int
    session_id: int
    token: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    accuracy: Optional[float] = None
    descriptor: Optional[Sequence[float]] = None
    assertion: Optional[HardwareAssertion] = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None or self.longitude is not None

    @classmethod
    def from_payload(cls, user_id: int, data: Dict[str, Any]) -> 'VerificationRequest':
        """Parse a JSON request body."""
        Validator.validate_required_fields(data, ['session_id'])
        session_id = data['session_id']
        if not Validator.is_valid_id(session_id):
            raise ValidationError("Session ID must be a positive integer")

        token = data.get('token')
        if token is not None and not isinstance(token, str):
            raise ValidationError("Token must be a string")

        latitude = longitude = accuracy = None
        location = data.get('location')
        if location is not None:
            if not isinstance(location, dict):
                raise ValidationError("Location must be an object")
            latitude, longitude = Validator.validate_coordinates(
                location.get('latitude'), location.get('longitude')
            )
            if location.get('accuracy') is not None:
                accuracy = Validator.validate_accuracy(location['accuracy'])

        assertion = None
        webauthn = data.get('webauthn')
        if webauthn is not None:
            if not isinstance(webauthn, dict) or not isinstance(webauthn.get('succeeded'), bool):
                raise ValidationError("WebAuthn result must include a boolean 'succeeded'")
            assertion = HardwareAssertion(
                succeeded=webauthn['succeeded'],
                credential_id=webauthn.get('credential_id')
            )

        return cls(
            user_id=user_id,
            session_id=session_id,
            token=token or None,
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            descriptor=data.get('face_descriptor'),
            assertion=assertion
        )


@dataclass
class FactorOutcome:
    """Result of evaluating one evidence factor."""
    factor: str
    evaluated: bool
    binding: bool
    passed: bool
    reasons: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def blocks(self) -> bool:
        return self.binding and not self.passed

    def to_dict(self):
        return {
            'factor': self.factor,
            'evaluated': self.evaluated,
            'binding': self.binding,
            'passed': self.passed,
            'reasons': self.reasons,
            'details': self.details
        }


class VerificationOrchestrator:
    """
    Combines the evidence factors of a request into one attendance decision.

    A record leaves ``pending`` exactly once: ``verified`` when every binding
    factor passes, ``rejected`` otherwise. The record and its first audit
    entry are committed together.
    """

    def __init__(
        self,
        settings: VerificationSettings,
        token_validator: TokenValidator,
        geofence: GeofenceValidator,
        matcher: BiometricMatcher,
        enrollments: EnrollmentService
    ):
        self.settings = settings
        self.token_validator = token_validator
        self.geofence = geofence
        self.matcher = matcher
        self.enrollments = enrollments

    # =================== ENTRY POINT ===================

    def verify(self, request: VerificationRequest, now: datetime = None) -> AttendanceRecord:
        now = now or datetime.utcnow()

        session = EventSession.get_by_id(request.session_id)
        if session is None:
            raise NotFoundError(f"Session {request.session_id} not found")
        if User.get_by_id(request.user_id) is None:
            raise NotFoundError(f"User {request.user_id} not found")
        if not session.is_running(now):
            raise ValidationError("Session is not open for verification")

        descriptor = self._check_evidence(session, request)

        existing = self.records_for(request.user_id, request.session_id)
        if any(not r.is_pending for r in existing):
            raise DuplicateAttendanceError("Attendance already recorded for this session")
        record = existing[0] if existing else None

        factors = [
            self._evaluate_token(session, request, now),
            self._evaluate_geofence(session, request),
            self._evaluate_biometric(session, request, descriptor),
            self._evaluate_assertion(session, request),
        ]
        if not any(f.evaluated or f.blocks for f in factors):
            raise ValidationError("No verifiable evidence presented")

        if record is None:
            record = AttendanceRecord(
                user_id=request.user_id,
                session_id=request.session_id,
                status=AttendanceStatus.PENDING
            )
        self._record_evidence(record, request, factors)

        failed = [f for f in factors if f.blocks]
        evaluated = [f for f in factors if f.evaluated]
        if not failed and not any(f.passed for f in evaluated):
            # Without a binding factor the evidence presented still has to hold
            failed = evaluated
        previous_status = record.status or AttendanceStatus.PENDING
        record.status = AttendanceStatus.REJECTED if failed else AttendanceStatus.VERIFIED
        record.rejection_reason = ', '.join(r for f in failed for r in f.reasons) or None
        if record.verified_at is None:
            record.verified_at = now

        entry = AuditEntry(
            actor_id=request.user_id,
            action=AuditAction.VERIFICATION,
            previous_status=previous_status,
            new_status=record.status,
            reason=record.rejection_reason,
            evidence={
                'verification_method': record.verification_method.value if record.verification_method else None,
                'factors': [f.to_dict() for f in factors]
            }
        )
        entry.attendance = record
        self._commit(record, entry)

        if failed:
            logger.warning("Attendance %s rejected for user %s at session %s: %s",
                           record.id, record.user_id, record.session_id, record.rejection_reason)
        else:
            logger.info("Attendance %s verified for user %s at session %s via %s",
                        record.id, record.user_id, record.session_id,
                        record.verification_method.value)
        return record

    @staticmethod
    def records_for(user_id: int, session_id: int) -> List[AttendanceRecord]:
        """Records of a user at a session; overridden ones count as finalized."""
        return (AttendanceRecord.query
                .filter_by(user_id=user_id, session_id=session_id)
                .order_by(AttendanceRecord.id)
                .all())

    # =================== EVIDENCE ===================

    def _check_evidence(self, session: EventSession, request: VerificationRequest) -> Optional[List[float]]:
        """Reject malformed or missing required evidence before any write."""
        if session.requires_qr and not request.token:
            raise ValidationError("This session requires a venue token")

        if request.has_location:
            Validator.validate_coordinates(request.latitude, request.longitude)
            if request.accuracy is not None:
                Validator.validate_accuracy(request.accuracy)
            if not session.has_venue():
                raise ValidationError("Session has no venue location configured")
        elif session.enforce_location:
            raise ValidationError("This session requires a location")

        descriptor = None
        if request.descriptor is not None:
            descriptor = self.matcher.validate(request.descriptor)
        elif session.requires_face:
            raise ValidationError("This session requires a face descriptor")

        if session.requires_webauthn and request.assertion is None:
            raise ValidationError("This session requires a hardware assertion")

        return descriptor

    def _evaluate_token(self, session, request, now) -> FactorOutcome:
        if not request.token:
            return FactorOutcome(Factor.TOKEN, evaluated=False, binding=False, passed=False)

        check = self.token_validator.validate(session.id, request.token, now)
        return FactorOutcome(
            Factor.TOKEN,
            evaluated=True,
            binding=session.requires_qr,
            passed=check.ok,
            reasons=[] if check.ok else [check.reason],
            details={'token_id': check.token_id}
        )

    def _evaluate_geofence(self, session, request) -> FactorOutcome:
        if not request.has_location:
            return FactorOutcome(Factor.GEOFENCE, evaluated=False, binding=False, passed=False)

        result = self.geofence.validate(
            request.latitude, request.longitude,
            session.venue_latitude, session.venue_longitude,
            session.radius_meters
        )
        accuracy_level = None
        if request.accuracy is not None:
            accuracy_level = self.geofence.accuracy_level(request.accuracy)
        logger.info("Location claim by user %s at session %s: (%.6f, %.6f) accuracy %s m (%s), %.1f m from venue",
                    request.user_id, session.id, request.latitude, request.longitude,
                    request.accuracy, accuracy_level, result.distance_meters)
        return FactorOutcome(
            Factor.GEOFENCE,
            evaluated=True,
            binding=session.enforce_location,
            passed=result.within_radius,
            reasons=[] if result.within_radius else [Rejection.OUTSIDE_GEOFENCE],
            details={
                'distance_meters': result.distance_meters,
                'radius_meters': result.radius_meters,
                'accuracy_meters': request.accuracy,
                'accuracy_level': accuracy_level
            }
        )

    def _evaluate_biometric(self, session, request, descriptor) -> FactorOutcome:
        if descriptor is None:
            return FactorOutcome(Factor.BIOMETRIC, evaluated=False, binding=False, passed=False)

        baseline = self.enrollments.load_baseline(request.user_id)
        if baseline is None:
            # Without a baseline the factor only matters when the session demands it
            return FactorOutcome(
                Factor.BIOMETRIC,
                evaluated=False,
                binding=session.requires_face,
                passed=False,
                reasons=[Rejection.ENROLLMENT_UNAVAILABLE]
            )

        result = self.matcher.compare(baseline, descriptor)
        accepted = self.matcher.accepts(result)
        reasons = []
        if not result.match:
            reasons.append(Rejection.FACE_MISMATCH)
        elif not accepted:
            reasons.append(Rejection.FACE_SCORE_LOW)

        return FactorOutcome(
            Factor.BIOMETRIC,
            evaluated=True,
            binding=True,
            passed=accepted,
            reasons=reasons,
            details=asdict(result)
        )

    def _evaluate_assertion(self, session, request) -> FactorOutcome:
        assertion = request.assertion
        if assertion is None:
            return FactorOutcome(Factor.WEBAUTHN, evaluated=False, binding=False, passed=False)

        return FactorOutcome(
            Factor.WEBAUTHN,
            evaluated=True,
            binding=session.requires_webauthn,
            passed=assertion.succeeded,
            reasons=[] if assertion.succeeded else [Rejection.WEBAUTHN_FAILED],
            details={'credential_id': assertion.credential_id}
        )

    # =================== RECORD ===================

    @staticmethod
    def determine_method(factors: List[FactorOutcome]) -> Optional[VerificationMethod]:
        """Highest-assurance factor evaluated; labels the record only."""
        evaluated = {f.factor for f in factors if f.evaluated}
        if Factor.WEBAUTHN in evaluated:
            return VerificationMethod.WEBAUTHN
        if Factor.BIOMETRIC in evaluated:
            return VerificationMethod.FACE
        if {Factor.TOKEN, Factor.GEOFENCE} <= evaluated:
            return VerificationMethod.QR_GPS
        if Factor.TOKEN in evaluated:
            return VerificationMethod.QR
        if Factor.GEOFENCE in evaluated:
            return VerificationMethod.GPS
        # Only a biometric attempt without a baseline
        return VerificationMethod.FACE

    def _record_evidence(self, record, request, factors) -> None:
        by_name = {f.factor: f for f in factors}

        token = by_name[Factor.TOKEN]
        record.venue_token_id = token.details.get('token_id') if token.evaluated else None

        geofence = by_name[Factor.GEOFENCE]
        if geofence.evaluated:
            record.latitude = request.latitude
            record.longitude = request.longitude
            record.gps_valid = geofence.passed
            record.distance_from_venue = geofence.details['distance_meters']
            record.location_accuracy = geofence.details['accuracy_meters']
            record.location_accuracy_level = geofence.details['accuracy_level']
        else:
            record.latitude = record.longitude = None
            record.gps_valid = record.distance_from_venue = None
            record.location_accuracy = record.location_accuracy_level = None

        biometric = by_name[Factor.BIOMETRIC]
        if biometric.evaluated:
            record.face_match = biometric.details['match']
            record.face_match_score = biometric.details['score']
        else:
            record.face_match = record.face_match_score = None

        assertion = request.assertion
        record.webauthn_used = bool(assertion and assertion.succeeded)
        record.webauthn_credential_id = assertion.credential_id if assertion else None

        record.verification_method = self.determine_method(factors)

    @staticmethod
    def _commit(record: AttendanceRecord, entry: AuditEntry) -> None:
        """Record and first audit entry succeed or fail together."""
        try:
            db.session.add(record)
            db.session.add(entry)
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise DuplicateAttendanceError("Attendance already recorded for this session") from exc
        except SQLAlchemyError:
            db.session.rollback()
            raise
