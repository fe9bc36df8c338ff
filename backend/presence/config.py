"""Configuration module for the Presence Verification Service."""
import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional, Type


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # JWT Configuration
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_ALGORITHM = 'HS256'

    # CORS
    CORS_ORIGINS = ["http://localhost:*", "http://127.0.0.1:*"]

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "200 per day;50 per hour"

    # Verification
    FACE_MATCH_THRESHOLD = float(os.environ.get('FACE_MATCH_THRESHOLD', 70.0))
    FACE_DISTANCE_THRESHOLD = float(os.environ.get('FACE_DISTANCE_THRESHOLD', 0.6))
    DEFAULT_RADIUS_METERS = int(os.environ.get('DEFAULT_RADIUS_METERS', 100))
    QR_ROTATION_INTERVAL = int(os.environ.get('QR_ROTATION_INTERVAL', 300))  # seconds
    TOKEN_CLOCK_SKEW_TOLERANCE = int(os.environ.get('TOKEN_CLOCK_SKEW_TOLERANCE', 0))  # seconds

    # Biometric storage (Fernet key, derived from SECRET_KEY when unset)
    BIOMETRIC_ENCRYPTION_KEY = os.environ.get('BIOMETRIC_ENCRYPTION_KEY')
    BIOMETRIC_ENCRYPTION_KEY_ID = 'v1'

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = 'logs/app.log'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or \
        'sqlite:///presence_dev.db'


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')
    CORS_ORIGINS = [o for o in os.environ.get('CORS_ORIGINS', '').split(',') if o]

    # Stricter limits
    RATELIMIT_DEFAULT = "100 per day;20 per hour"
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    LOG_FILE = '/app/logs/app.log'


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    RATELIMIT_ENABLED = False

    FACE_MATCH_THRESHOLD = 70.0
    FACE_DISTANCE_THRESHOLD = 0.6
    DEFAULT_RADIUS_METERS = 100
    QR_ROTATION_INTERVAL = 300
    TOKEN_CLOCK_SKEW_TOLERANCE = 0
    LOG_LEVEL = 'WARNING'


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(config_name: Optional[str] = None) -> Type[Config]:
    """Get configuration by name."""
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'default')
    return config.get(config_name, config['default'])


@dataclass(frozen=True)
class VerificationSettings:
    """Thresholds and intervals handed to each validator at construction."""
    face_match_threshold: float = 70.0
    face_distance_threshold: float = 0.6
    default_radius_meters: int = 100
    qr_rotation_interval: int = 300
    clock_skew_tolerance: int = 0

    def __post_init__(self):
        if not 0.0 <= self.face_match_threshold <= 100.0:
            raise ValueError("face_match_threshold must be within [0, 100]")
        if self.face_distance_threshold <= 0:
            raise ValueError("face_distance_threshold must be positive")
        if self.default_radius_meters <= 0:
            raise ValueError("default_radius_meters must be positive")
        if self.qr_rotation_interval <= 0:
            raise ValueError("qr_rotation_interval must be positive")
        if self.clock_skew_tolerance < 0:
            raise ValueError("clock_skew_tolerance must not be negative")

    @property
    def rotation_interval(self) -> timedelta:
        return timedelta(seconds=self.qr_rotation_interval)

    @property
    def skew_tolerance(self) -> timedelta:
        return timedelta(seconds=self.clock_skew_tolerance)

    @classmethod
    def from_config(cls, mapping: Mapping) -> 'VerificationSettings':
        """Build settings from a Flask config mapping."""
        return cls(
            face_match_threshold=float(mapping.get('FACE_MATCH_THRESHOLD', 70.0)),
            face_distance_threshold=float(mapping.get('FACE_DISTANCE_THRESHOLD', 0.6)),
            default_radius_meters=int(mapping.get('DEFAULT_RADIUS_METERS', 100)),
            qr_rotation_interval=int(mapping.get('QR_ROTATION_INTERVAL', 300)),
            clock_skew_tolerance=int(mapping.get('TOKEN_CLOCK_SKEW_TOLERANCE', 0)),
        )
