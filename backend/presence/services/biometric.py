"""Face descriptor matching and encrypted descriptor storage."""
import base64
import hashlib
import json
import math
from dataclasses import dataclass
from typing import List, Sequence

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from presence.config import VerificationSettings
from presence.utils.errors import DimensionMismatchError, PresenceError
from presence.utils.validators import Validator


@dataclass(frozen=True)
class MatchResult:
    """Face match result data structure."""
    distance: float
    match: bool
    score: float
    threshold: float

    def to_dict(self):
        return {
            'distance': round(self.distance, 4),
            'match': self.match,
            'score': round(self.score, 2),
            'threshold': self.threshold
        }


class BiometricMatcher:
    """
    Compares pre-computed face descriptors.

    The distance threshold decides ``match``; the score threshold
    (``face_match_threshold``) is a second, independent gate applied by
    ``accepts``. Automatic acceptance needs both.
    """

    def __init__(self, settings: VerificationSettings):
        self.settings = settings

    @staticmethod
    def validate(descriptor) -> List[float]:
        """Reject anything that is not 128 numbers in [-1, 1]."""
        return Validator.validate_descriptor(descriptor)

    @staticmethod
    def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
        if len(a) != len(b):
            raise DimensionMismatchError(
                f"Descriptor dimensions do not match: {len(a)} != {len(b)}"
            )
        return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))

    @staticmethod
    def score_for(distance: float) -> float:
        """Linear decay from 100 at distance 0 to 0 at distance >= 1."""
        score = (1 - min(distance, 1.0)) * 100
        return max(0.0, min(100.0, score))

    def compare(self, a: Sequence[float], b: Sequence[float]) -> MatchResult:
        distance = self.euclidean_distance(a, b)
        threshold = self.settings.face_distance_threshold
        return MatchResult(
            distance=distance,
            match=distance < threshold,
            score=self.score_for(distance),
            threshold=threshold
        )

    def accepts(self, result: MatchResult) -> bool:
        """Both the distance match and the score threshold must hold."""
        return result.match and result.score >= self.settings.face_match_threshold


class DescriptorCipher:
    """Fernet encryption of descriptors at rest."""

    KEY_SIZE = 32
    KDF_ITERATIONS = 100000

    def __init__(self, key: bytes, key_id: str = 'v1'):
        self.key_id = key_id
        self._fernet = Fernet(key)

    @classmethod
    def derive_key(cls, secret: str) -> bytes:
        """Derive a Fernet key from the application secret."""
        salt = hashlib.sha256(b"presence:biometric-descriptor").digest()[:16]
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=cls.KEY_SIZE,
            salt=salt,
            iterations=cls.KDF_ITERATIONS,
        )
        return base64.urlsafe_b64encode(kdf.derive(secret.encode()))

    @classmethod
    def from_config(cls, config) -> 'DescriptorCipher':
        key = config.get('BIOMETRIC_ENCRYPTION_KEY')
        if key:
            key = key.encode() if isinstance(key, str) else key
        else:
            key = cls.derive_key(config['SECRET_KEY'])
        return cls(key, key_id=config.get('BIOMETRIC_ENCRYPTION_KEY_ID', 'v1'))

    def encrypt(self, descriptor: Sequence[float]) -> str:
        payload = json.dumps(list(descriptor), separators=(',', ':'))
        return self._fernet.encrypt(payload.encode()).decode()

    def decrypt(self, token: str) -> List[float]:
        try:
            payload = self._fernet.decrypt(token.encode())
        except InvalidToken as exc:
            raise PresenceError("Stored face descriptor could not be decrypted") from exc
        return json.loads(payload)
