"""Hypothesis strategies for property testing.

Provides reusable composite strategies for generating sessions, routes and
GitHub profiles that match the control server's data contracts.
"""

from hypothesis import strategies as st

from src.control_server.shared.auth.enums import Role
from src.control_server.shared.auth.session import Session

usernames = st.text(
    alphabet="abcdefghijklmnopqrstuvwxyz0123456789.-_", min_size=1, max_size=20
)
roles = st.sampled_from(list(Role))
role_sets = st.frozensets(roles)


@st.composite
def sessions(draw, authenticated=None):
    """Generate sessions, optionally forced (un)authenticated.

    Args:
        draw: Hypothesis draw function
        authenticated: True or False to force, None for either

    Returns:
        Session
    """
    if authenticated is None:
        authenticated = draw(st.booleans())
    if authenticated:
        return Session(
            username=draw(usernames),
            role=draw(roles),
            session_id=draw(st.uuids().map(str)),
        )
    # Any strict subset of the three login fields
    fields = draw(
        st.sets(st.sampled_from(["username", "role", "session_id"]), max_size=2)
    )
    return Session(
        username=draw(usernames) if "username" in fields else None,
        role=draw(roles) if "role" in fields else None,
        session_id=draw(st.uuids().map(str)) if "session_id" in fields else None,
        oauth_state=draw(st.none() | st.text(min_size=1, max_size=43)),
    )


@st.composite
def cookie_payloads(draw):
    """Generate arbitrary decoded cookie dicts, including junk values."""
    values = st.none() | st.text(max_size=30) | st.integers() | roles.map(str)
    keys = st.sampled_from(["Username", "Role", "SessionID", "oauth_state", "other"])
    return draw(st.dictionaries(keys, values, max_size=5))


@st.composite
def github_profiles(draw):
    """Generate GitHub profile payloads with optional email and name."""
    return {
        "login": draw(usernames),
        "email": draw(st.none() | st.emails()),
        "name": draw(st.none() | st.text(min_size=1, max_size=30)),
    }
