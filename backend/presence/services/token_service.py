"""Venue token rotation and validation service."""
import base64
import io
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

import qrcode
from sqlalchemy.exc import SQLAlchemyError

from presence import db
from presence.config import VerificationSettings
from presence.models.event_session import EventSession
from presence.models.venue_token import VenueToken
from presence.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class TokenRejection:
    """Reasons a presented token is refused."""
    UNKNOWN = 'unknown_token'
    EXPIRED = 'expired_token'
    SUPERSEDED = 'superseded_token'
    WRONG_SESSION = 'wrong_session'
    CLOCK_SKEW = 'clock_skew'


@dataclass(frozen=True)
class TokenCheck:
    ok: bool
    reason: Optional[str] = None
    token_id: Optional[int] = None


class TokenValidator:
    """
    Issues and validates the rotating venue token of each session.

    One token per session is active at a time. ``issue`` is serialized per
    session; ``validate`` reads under the same lock so it never sees a
    half-finished rotation. Validation does not consume the token.
    """

    def __init__(self, settings: VerificationSettings):
        self.settings = settings
        self._locks: Dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, session_id: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.Lock()
            return lock

    @staticmethod
    def active_token(session_id: int) -> Optional[VenueToken]:
        """Current non-superseded token of a session."""
        return (VenueToken.query
                .filter_by(session_id=session_id, superseded_at=None)
                .order_by(VenueToken.issued_at.desc(), VenueToken.id.desc())
                .first())

    def issue(self, session_id: int, now: datetime = None) -> VenueToken:
        """Supersede the current token and store a fresh one."""
        now = now or datetime.utcnow()
        session = EventSession.get_by_id(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")

        with self._lock_for(session_id):
            try:
                (VenueToken.query
                 .filter_by(session_id=session_id, superseded_at=None)
                 .update({'superseded_at': now}, synchronize_session='fetch'))

                token = VenueToken(
                    session_id=session_id,
                    secret=VenueToken.generate_secret(),
                    issued_at=now,
                    valid_until=now + self.settings.rotation_interval
                )
                db.session.add(token)
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                raise

        logger.info("Rotated venue token for session %s (valid until %s)",
                    session_id, token.valid_until.isoformat())
        return token

    def validate(self, session_id: int, presented_secret: str, now: datetime = None) -> TokenCheck:
        """Accept only the session's active token inside its window."""
        if not isinstance(presented_secret, str) or not presented_secret:
            raise ValidationError("Token must be a non-empty string")
        now = now or datetime.utcnow()
        tolerance = self.settings.skew_tolerance

        with self._lock_for(session_id):
            token = VenueToken.query.filter_by(secret=presented_secret).first()

            if token is None:
                return TokenCheck(False, TokenRejection.UNKNOWN)
            if token.session_id != session_id:
                return TokenCheck(False, TokenRejection.WRONG_SESSION, token.id)
            if token.is_superseded:
                return TokenCheck(False, TokenRejection.SUPERSEDED, token.id)
            if now < token.issued_at - tolerance:
                return TokenCheck(False, TokenRejection.CLOCK_SKEW, token.id)
            if now >= token.valid_until + tolerance:
                return TokenCheck(False, TokenRejection.EXPIRED, token.id)

        return TokenCheck(True, None, token.id)

    @staticmethod
    def render_qr(token: VenueToken) -> str:
        """PNG data URI of the token secret for display at the venue."""
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_H,
            box_size=10,
            border=4,
        )
        qr.add_data(token.secret)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffered = io.BytesIO()
        img.save(buffered)
        img_str = base64.b64encode(buffered.getvalue()).decode()

        return f"data:image/png;base64,{img_str}"
