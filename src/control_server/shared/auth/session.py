"""Typed view over the signed session cookie.

Starlette's SessionMiddleware signs and decodes the cookie; this module maps
its dict onto the Session dataclass and back. Keys keep the names existing
clients already carry: Username, Role, SessionID and oauth_state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from starlette.requests import Request

from src.control_server.shared.auth.enums import Role, parse_role

USERNAME_KEY = "Username"
ROLE_KEY = "Role"
SESSION_ID_KEY = "SessionID"
OAUTH_STATE_KEY = "oauth_state"


def _text(value: Any) -> str | None:
    if not isinstance(value, str) or value == "":
        return None
    return value


@dataclass
class Session:
    """Per-client session state.

    Attributes:
        username: Local username, set only on successful login
        role: Role copied from the user record at login
        session_id: Random identifier minted at login
        oauth_state: Pending anti-forgery state between login and callback
    """

    username: str | None = None
    role: Role | None = None
    session_id: str | None = None
    oauth_state: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return (
            self.username is not None
            and self.role is not None
            and self.session_id is not None
        )

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> Session:
        """Build a Session from raw cookie data, dropping empty or invalid values."""
        return cls(
            username=_text(data.get(USERNAME_KEY)),
            role=parse_role(data.get(ROLE_KEY)),
            session_id=_text(data.get(SESSION_ID_KEY)),
            oauth_state=_text(data.get(OAUTH_STATE_KEY)),
        )

    def to_mapping(self) -> dict[str, str]:
        """Serialize present fields only."""
        data = {
            USERNAME_KEY: self.username,
            ROLE_KEY: self.role.value if self.role is not None else None,
            SESSION_ID_KEY: self.session_id,
            OAUTH_STATE_KEY: self.oauth_state,
        }
        return {key: value for key, value in data.items() if value is not None}


def load_session(request: Request) -> Session:
    """Read the caller's session. Missing or tampered cookies yield an empty one."""
    return Session.from_mapping(request.session)


def save_session(request: Request, session: Session) -> None:
    """Write the session back so SessionMiddleware re-signs the cookie."""
    data = session.to_mapping()
    for key in (USERNAME_KEY, ROLE_KEY, SESSION_ID_KEY, OAUTH_STATE_KEY):
        if key in data:
            request.session[key] = data[key]
        else:
            request.session.pop(key, None)
