import pytest

from presence.models import UserRole
from presence.services.authorization import CapabilitySet, Permission, resolve_capabilities


def test_student_can_only_mark(student, session):
    caps = resolve_capabilities(student)

    assert caps.has(Permission.MARK_ATTENDANCE)
    assert not caps.has(Permission.OVERRIDE_ATTENDANCE)
    assert not caps.can_override(session)
    assert not caps.can_manage_tokens(session)


def test_owner_manages_own_session_tokens(teacher, session, make_session, make_user):
    other_owner = make_user(role=UserRole.TEACHER)
    other = make_session(owner_id=other_owner.id)
    caps = resolve_capabilities(teacher)

    assert caps.can_manage_tokens(session)
    assert not caps.can_manage_tokens(other)
    assert not caps.can_override(session)


def test_admin_scope_follows_organization(make_user, make_session):
    admin = make_user(role=UserRole.ADMIN, organization_id=1)
    caps = resolve_capabilities(admin)

    assert not caps.is_global
    assert caps.can_override(make_session(organization_id=1))
    assert not caps.can_override(make_session(organization_id=2))
    assert caps.can_manage_tokens(make_session(organization_id=1))


@pytest.mark.parametrize('role,organization_id', [
    (UserRole.SUPER_ADMIN, 1),
    (UserRole.ADMIN, None),
])
def test_global_actors(make_user, make_session, role, organization_id):
    caps = resolve_capabilities(make_user(role=role, organization_id=organization_id))

    assert caps.is_global
    assert caps.can_override(make_session(organization_id=3))


def test_inactive_user_has_no_permissions(make_user, session):
    caps = resolve_capabilities(make_user(role=UserRole.SUPER_ADMIN, is_active=False))

    assert caps.permissions == frozenset()
    assert not caps.can_override(session)


def test_enrollment_review_scope(make_user):
    admin = resolve_capabilities(make_user(role=UserRole.ADMIN, organization_id=1))
    coordinator = resolve_capabilities(make_user(role=UserRole.COORDINATOR, organization_id=1))
    local = make_user(organization_id=1)
    foreign = make_user(organization_id=2)

    assert admin.can_review_enrollment(local)
    assert not admin.can_review_enrollment(foreign)
    assert not coordinator.can_review_enrollment(local)


def test_session_without_organization_needs_global_scope(session):
    session.organization_id = None
    caps = CapabilitySet(actor_id=99, permissions=frozenset(Permission), organization_id=None)

    assert not caps.can_override(session)
    assert CapabilitySet(actor_id=99, permissions=frozenset(Permission), is_global=True).can_override(session)
