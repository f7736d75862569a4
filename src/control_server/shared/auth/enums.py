"""Canonical role definitions for route-level access control.

Roles are totally ordered by privilege (user < moderator < admin), but the
order never implies inclusion: a route must list every role allowed to call
it. The order is only consulted when deciding which roles a caller may hand
out to others.
"""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """User roles, serialized with their lowercase value."""

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        """Position of the role in the privilege order (0 is lowest)."""
        return ROLE_ORDER.index(self)


ROLE_ORDER: tuple[Role, ...] = (Role.USER, Role.MODERATOR, Role.ADMIN)

# Immutable set for O(1) validation at registration time
VALID_ROLES: frozenset[str] = frozenset(role.value for role in Role)


def parse_role(value: object) -> Role | None:
    """Convert an untrusted value into a Role.

    Returns None for anything that is not exactly one of the role values,
    including empty strings and non-string types.
    """
    if not isinstance(value, str) or value not in VALID_ROLES:
        return None
    return Role(value)


def satisfies(required: frozenset[Role], actual: Role | None) -> bool:
    """Check whether ``actual`` is one of the ``required`` roles.

    Args:
        required: Roles permitted on a route
        actual: The caller's role, None when unauthenticated

    Returns:
        True iff the caller's role is listed. Admin does not implicitly
        satisfy a moderator-only set.
    """
    if actual is None:
        return False
    return actual in required


def outranks(candidate: Role, reference: Role) -> bool:
    """True if ``candidate`` is strictly more privileged than ``reference``."""
    return candidate.rank > reference.rank
