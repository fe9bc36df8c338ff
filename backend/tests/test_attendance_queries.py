from datetime import datetime, timedelta

import pytest

from presence.models import AttendanceRecord, AttendanceStatus, UserRole
from presence.services.attendance_service import AttendanceQueries
from presence.services.authorization import resolve_capabilities
from presence.utils.errors import AuthorizationError, ValidationError

DAY = datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture
def make_record(app):
    def _make_record(user, session, status=AttendanceStatus.VERIFIED, verified_at=DAY):
        return AttendanceRecord(
            user_id=user.id,
            session_id=session.id,
            status=status,
            verified_at=None if status == AttendanceStatus.PENDING else verified_at
        ).save()
    return _make_record


def test_history_newest_first(make_record, make_session, student):
    older = make_record(student, make_session(title='Monday'), verified_at=DAY)
    newer = make_record(student, make_session(title='Tuesday'), verified_at=DAY + timedelta(days=1))

    records = AttendanceQueries.user_history(student.id)

    assert [r.id for r in records] == [newer.id, older.id]


def test_history_only_lists_own_records(make_record, make_user, session, student):
    make_record(make_user(), session)

    assert AttendanceQueries.user_history(student.id) == []


def test_history_filters(make_record, make_session, student):
    first = make_session(title='Monday')
    monday = make_record(student, first, verified_at=DAY)
    second = make_record(student, make_session(title='Friday'), verified_at=DAY + timedelta(days=4))

    assert [r.id for r in AttendanceQueries.user_history(student.id, session_id=first.id)] == [monday.id]
    in_range = AttendanceQueries.user_history(
        student.id, start=DAY + timedelta(days=1), end=DAY + timedelta(days=5)
    )
    assert [r.id for r in in_range] == [second.id]


def test_session_attendance_for_owner(make_record, make_user, session, teacher, student):
    make_record(student, session)
    make_record(make_user(), session, status=AttendanceStatus.REJECTED)

    everything = AttendanceQueries.session_attendance(session, resolve_capabilities(teacher))
    rejected = AttendanceQueries.session_attendance(
        session, resolve_capabilities(teacher), status=AttendanceStatus.REJECTED
    )

    assert len(everything) == 2
    assert [r.status for r in rejected] == [AttendanceStatus.REJECTED]


def test_session_attendance_refused_to_students(session, student):
    with pytest.raises(AuthorizationError):
        AttendanceQueries.session_attendance(session, resolve_capabilities(student))


def test_pending_scoped_to_organization(make_record, make_session, make_user, student):
    local = make_record(student, make_session(organization_id=1), status=AttendanceStatus.PENDING)
    make_record(student, make_session(organization_id=2), status=AttendanceStatus.PENDING)
    make_record(student, make_session(organization_id=1), status=AttendanceStatus.VERIFIED)
    admin = make_user(role=UserRole.ADMIN, organization_id=1)
    super_admin = make_user(role=UserRole.SUPER_ADMIN, organization_id=1)

    assert [r.id for r in AttendanceQueries.pending(resolve_capabilities(admin))] == [local.id]
    assert len(AttendanceQueries.pending(resolve_capabilities(super_admin))) == 2
    assert AttendanceQueries.pending(resolve_capabilities(admin), session_id=local.session_id)[0].id == local.id


def test_pending_requires_override_permission(student):
    with pytest.raises(AuthorizationError):
        AttendanceQueries.pending(resolve_capabilities(student))


@pytest.mark.parametrize('value', ['abc', '0', '9' * 30])
def test_parse_id_rejects(value):
    with pytest.raises(ValidationError):
        AttendanceQueries.parse_id(value, 'session_id')


def test_parse_filters():
    assert AttendanceQueries.parse_id('12', 'session_id') == 12
    assert AttendanceQueries.parse_id(None, 'session_id') is None
    assert AttendanceQueries.parse_date('2026-03-02', 'start_date') == datetime(2026, 3, 2)
    assert AttendanceQueries.parse_status('rejected') == AttendanceStatus.REJECTED
    with pytest.raises(ValidationError):
        AttendanceQueries.parse_date('yesterday', 'start_date')
    with pytest.raises(ValidationError):
        AttendanceQueries.parse_status('late')
