"""Shared fixtures for the test suite."""
import math
from datetime import datetime

import pytest
from flask_jwt_extended import create_access_token

from presence import create_app, db
from presence.models import BiometricEnrollment, EnrollmentStatus, EventSession, User, UserRole
from presence.services import get_core
from presence.services.geofence import EARTH_RADIUS_METERS

VENUE = (40.7128, -74.0060)


def north_of(point, meters):
    """Point exactly ``meters`` north along the meridian."""
    lat, lng = point
    return lat + math.degrees(meters / EARTH_RADIUS_METERS), lng


def descriptor(value=0.0):
    return [value] * 128


def shifted(base, delta):
    """Copy of ``base`` at Euclidean distance ``delta`` (first component moved)."""
    other = list(base)
    other[0] += delta
    return other


@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def core(app):
    return get_core()


@pytest.fixture
def make_user(app):
    counter = {'n': 0}

    def _make_user(role=UserRole.STUDENT, organization_id=1, **kwargs):
        counter['n'] += 1
        user = User(
            email=f"user{counter['n']}@example.com",
            name=f"User {counter['n']}",
            role=role,
            organization_id=organization_id,
            **kwargs
        )
        return user.save()
    return _make_user


@pytest.fixture
def teacher(make_user):
    return make_user(role=UserRole.TEACHER)


@pytest.fixture
def student(make_user):
    return make_user(role=UserRole.STUDENT)


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN, organization_id=1)


@pytest.fixture
def make_session(app, teacher):
    def _make_session(**kwargs):
        values = {
            'title': 'Distributed Systems',
            'organization_id': 1,
            'owner_id': teacher.id,
            'venue_latitude': VENUE[0],
            'venue_longitude': VENUE[1],
            'radius_meters': 100,
            'requires_qr': True,
            'enforce_location': True,
        }
        values.update(kwargs)
        return EventSession(**values).save()
    return _make_session


@pytest.fixture
def session(make_session):
    return make_session()


@pytest.fixture
def enroll(core):
    """Store an approved baseline descriptor for a user."""
    def _enroll(user, vector):
        enrollment = core.enrollments.submit(user.id, vector)
        enrollment.enrollment_status = EnrollmentStatus.APPROVED
        enrollment.reviewed_at = datetime.utcnow()
        db.session.commit()
        return enrollment
    return _enroll


@pytest.fixture
def auth_headers(app):
    def _auth_headers(user):
        token = create_access_token(identity=str(user.id))
        return {'Authorization': f'Bearer {token}'}
    return _auth_headers


def approved_enrollments(user_id):
    return BiometricEnrollment.query.filter_by(
        user_id=user_id, enrollment_status=EnrollmentStatus.APPROVED
    ).count()
