"""Verification services wired from application config."""
from flask import Flask, current_app

from presence.config import VerificationSettings
from presence.services.biometric import BiometricMatcher, DescriptorCipher
from presence.services.enrollment_service import EnrollmentService
from presence.services.geofence import GeofenceValidator
from presence.services.token_service import TokenValidator
from presence.services.verification_service import VerificationOrchestrator


class VerificationCore:
    """Holds the validators shared by every request of an app.

    The token validator keeps the per-session locks, so there is exactly one
    per application.
    """

    def __init__(self, app: Flask = None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        self.settings = VerificationSettings.from_config(app.config)
        self.geofence = GeofenceValidator(self.settings)
        self.matcher = BiometricMatcher(self.settings)
        self.tokens = TokenValidator(self.settings)
        self.enrollments = EnrollmentService(DescriptorCipher.from_config(app.config))
        self.orchestrator = VerificationOrchestrator(
            self.settings, self.tokens, self.geofence, self.matcher, self.enrollments
        )
        app.extensions['presence'] = self


def get_core() -> VerificationCore:
    return current_app.extensions['presence']
