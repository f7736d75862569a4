"""Property tests for authorization, sessions and provisioning.

Properties:
- Unauthenticated sessions never pass a protected route
- Authorization equals role membership, except the owner on self routes
- Cookie data of any shape loads without raising
- get_or_create_user is idempotent for any profile
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from src.control_server.shared.auth.enums import Role
from src.control_server.shared.auth.github import GitHubProfile
from src.control_server.shared.auth.provisioning import get_or_create_user
from src.control_server.shared.auth.session import Session
from src.control_server.shared.errors import ForbiddenError, UnauthenticatedError
from src.control_server.shared.middleware.require_role import authorize
from src.control_server.shared.routing import Route
from tests.fixtures.mocks.mock_user_store import InMemoryUserStore
from tests.property.conftest import (
    cookie_payloads,
    github_profiles,
    role_sets,
    sessions,
    usernames,
)


async def _handler(request, session):
    return None


def _route(permissions, self_access: bool) -> Route:
    return Route(
        uri="/user/{name}",
        method="GET",
        permissions=permissions,
        self_access_allowed=self_access,
        handler=_handler,
    )


def _allowed(route: Route, session: Session, params: dict) -> bool:
    try:
        authorize(route, session, params)
    except (UnauthenticatedError, ForbiddenError):
        return False
    return True


class TestAuthorizeProperties:
    @settings(max_examples=200)
    @given(
        permissions=role_sets.filter(bool),
        self_access=st.booleans(),
        session=sessions(authenticated=False),
        target=usernames,
    )
    def test_unauthenticated_never_passes_protected_route(
        self, permissions, self_access, session, target
    ):
        with pytest.raises(UnauthenticatedError):
            authorize(_route(permissions, self_access), session, {"name": target})

    @settings(max_examples=200)
    @given(
        permissions=role_sets,
        self_access=st.booleans(),
        session=sessions(),
        target=usernames,
    )
    def test_public_routes_always_pass(self, permissions, self_access, session, target):
        assert _allowed(_route(frozenset(), self_access), session, {"name": target})

    @settings(max_examples=300)
    @given(
        permissions=role_sets.filter(bool),
        self_access=st.booleans(),
        session=sessions(authenticated=True),
        target=usernames,
        target_is_self=st.booleans(),
    )
    def test_decision_matches_membership_or_ownership(
        self, permissions, self_access, session, target, target_is_self
    ):
        if target_is_self:
            target = session.username
        route = _route(permissions, self_access)

        expected = session.role in permissions or (
            self_access and target == session.username
        )

        assert _allowed(route, session, {"name": target}) is expected

    @given(session=sessions(authenticated=True))
    def test_admin_never_implies_other_roles(self, session):
        session.role = Role.ADMIN
        route = _route(frozenset({Role.USER, Role.MODERATOR}), False)

        assert not _allowed(route, session, {"name": "someone-else-entirely"})


class TestSessionProperties:
    @given(data=cookie_payloads())
    def test_any_cookie_payload_loads(self, data):
        session = Session.from_mapping(data)

        assert session.role is None or isinstance(session.role, Role)
        for value in (session.username, session.session_id, session.oauth_state):
            assert value is None or (isinstance(value, str) and value != "")

    @given(session=sessions())
    def test_mapping_round_trip(self, session):
        assert Session.from_mapping(session.to_mapping()) == session


class TestProvisioningProperties:
    @settings(max_examples=100)
    @given(payload=github_profiles(), repeats=st.integers(min_value=1, max_value=4))
    def test_idempotent(self, payload, repeats):
        store = InMemoryUserStore()
        profile = GitHubProfile.model_validate(payload)

        results = [get_or_create_user(store, profile) for _ in range(repeats)]

        assert all(result == results[0] for result in results)
        assert list(store.users) == [profile.login]
        assert store.mutations == ["create_user"]
        assert results[0].role is Role.USER
