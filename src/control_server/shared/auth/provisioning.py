"""Bridge from a GitHub identity to a local user record."""

from __future__ import annotations

import logging

from aws_xray_sdk.core import xray_recorder

from src.control_server.shared.auth.enums import Role
from src.control_server.shared.auth.github import GitHubProfile
from src.control_server.shared.errors import (
    RecordNotFoundError,
    UserAlreadyExistsError,
)
from src.control_server.shared.logging_utils import sanitize_for_log
from src.control_server.shared.models.user import User
from src.control_server.shared.user_store import UserStore

logger = logging.getLogger(__name__)


@xray_recorder.capture("get_or_create_user")
def get_or_create_user(store: UserStore, profile: GitHubProfile) -> User:
    """Return the local user for a GitHub login, creating it on first login.

    New users get the ``user`` role. If another request creates the same user
    between the lookup and the write, the conditional put fails and the
    winner's record is returned.

    Args:
        store: User store
        profile: Authenticated GitHub profile

    Returns:
        The stored User

    Raises:
        StoreError: Any store failure other than "not found"
    """
    try:
        return store.get_user_by_username(profile.login)
    except RecordNotFoundError:
        pass

    user = User(
        username=profile.login,
        name=profile.name or profile.login,
        email=profile.email or "",
        role=Role.USER,
    )
    try:
        created = store.create_user(user)
    except UserAlreadyExistsError:
        logger.info(
            "User created concurrently, re-reading",
            extra={"username": sanitize_for_log(profile.login)},
        )
        return store.get_user_by_username(profile.login)

    logger.info(
        "Provisioned new user",
        extra={"username": sanitize_for_log(created.username)},
    )
    return created
