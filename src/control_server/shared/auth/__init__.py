"""Authentication utilities: roles, sessions, GitHub OAuth.

Provisioning is imported from its own module; it depends on the models,
which depend on the role enum here.
"""

from src.control_server.shared.auth.enums import (
    ROLE_ORDER,
    VALID_ROLES,
    Role,
    outranks,
    parse_role,
    satisfies,
)
from src.control_server.shared.auth.github import (
    GitHubOAuthClient,
    GitHubProfile,
    GitHubToken,
    ProfileDecodeError,
    ProviderError,
    TokenError,
)
from src.control_server.shared.auth.oauth_state import generate_state, validate_state
from src.control_server.shared.auth.session import (
    Session,
    load_session,
    save_session,
)

__all__ = [
    "ROLE_ORDER",
    "VALID_ROLES",
    "Role",
    "outranks",
    "parse_role",
    "satisfies",
    "GitHubOAuthClient",
    "GitHubProfile",
    "GitHubToken",
    "ProfileDecodeError",
    "ProviderError",
    "TokenError",
    "generate_state",
    "validate_state",
    "Session",
    "load_session",
    "save_session",
]
