"""Capability resolution for the current actor."""
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional

from presence.models.event_session import EventSession
from presence.models.user import User, UserRole


class Permission(Enum):
    MARK_ATTENDANCE = 'attendance.mark'
    OVERRIDE_ATTENDANCE = 'attendance.override'
    MANAGE_TOKENS = 'tokens.manage'
    REVIEW_ENROLLMENT = 'enrollment.review'


ROLE_PERMISSIONS = {
    UserRole.STUDENT: frozenset({Permission.MARK_ATTENDANCE}),
    UserRole.TEACHER: frozenset({Permission.MARK_ATTENDANCE, Permission.MANAGE_TOKENS}),
    UserRole.COORDINATOR: frozenset({
        Permission.MARK_ATTENDANCE, Permission.MANAGE_TOKENS,
        Permission.OVERRIDE_ATTENDANCE
    }),
    UserRole.ADMIN: frozenset(Permission),
    UserRole.SUPER_ADMIN: frozenset(Permission),
}


@dataclass(frozen=True)
class CapabilitySet:
    """Permissions of one actor, resolved once per request."""
    actor_id: int
    permissions: FrozenSet[Permission] = field(default_factory=frozenset)
    organization_id: Optional[int] = None
    is_global: bool = False

    def has(self, permission: Permission) -> bool:
        return permission in self.permissions

    def in_scope(self, session: EventSession) -> bool:
        if self.is_global:
            return True
        return self.organization_id is not None and session.organization_id == self.organization_id

    def can_override(self, session: EventSession) -> bool:
        return self.has(Permission.OVERRIDE_ATTENDANCE) and self.in_scope(session)

    def can_manage_tokens(self, session: EventSession) -> bool:
        if session.owner_id == self.actor_id:
            return True
        return self.has(Permission.MANAGE_TOKENS) and self.has(Permission.OVERRIDE_ATTENDANCE) \
            and self.in_scope(session)

    def can_review_enrollment(self, user: User) -> bool:
        if not self.has(Permission.REVIEW_ENROLLMENT):
            return False
        return self.is_global or user.organization_id == self.organization_id


def resolve_capabilities(user: User) -> CapabilitySet:
    """Build the capability set for a user.

    Super admins, and admins bound to no organization, act globally.
    """
    if user is None or not user.is_active:
        return CapabilitySet(actor_id=getattr(user, 'id', None))

    is_global = user.role == UserRole.SUPER_ADMIN or (
        user.is_admin() and user.organization_id is None
    )
    return CapabilitySet(
        actor_id=user.id,
        permissions=ROLE_PERMISSIONS.get(user.role, frozenset()),
        organization_id=user.organization_id,
        is_global=is_global
    )
