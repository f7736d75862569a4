"""
User CRUD handlers.

Routes (permissions are declared in register_routes):
    GET    /users          list all users
    POST   /user           create a user
    GET    /user/me        the caller's own record
    GET    /user/{name}    fetch one user
    PUT    /user/{name}    merge changes into a user
    DELETE /user/{name}    delete a user and their images

For On-Call Engineers:
    - 403 on /user/{name} for a moderator is expected: only admins and the
      owner may read or change a user record
    - 500 responses come from the store; search logs for "DynamoDB"
    - A user whose GitHub login is literally "me" cannot be reached through
      /user/{name}: /user/me is registered first and always means the caller
    - Usernames are stored exactly as GitHub returns the login; path matching
      and self access are case-sensitive, so /user/Alice is not /user/alice
"""

from __future__ import annotations

import logging

from fastapi.responses import JSONResponse
from starlette.requests import Request
from starlette.responses import Response

from src.control_server.api.body import parse_body
from src.control_server.shared.auth.enums import Role, outranks, parse_role
from src.control_server.shared.auth.session import Session
from src.control_server.shared.errors import (
    BadRequestError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    RecordNotFoundError,
    StoreError,
    UserAlreadyExistsError,
)
from src.control_server.shared.logging_utils import sanitize_for_log
from src.control_server.shared.middleware.require_role import require_owner_or_admin
from src.control_server.shared.models.user import User, UserPayload
from src.control_server.shared.routing import RouteRegistry
from src.control_server.shared.user_store import UserStore

logger = logging.getLogger(__name__)

STAFF = (Role.MODERATOR, Role.ADMIN)
EVERYONE = (Role.USER, Role.MODERATOR, Role.ADMIN)


class UserAPI:
    """Handlers for user records."""

    def __init__(self, store: UserStore):
        self._store = store

    def register_routes(self, registry: RouteRegistry) -> None:
        # /user/me must precede /user/{name} so "me" is not taken as a username
        registry.add("/users", "GET", STAFF, self.get_users, description="List users")
        registry.add(
            "/user", "POST", (Role.ADMIN,), self.create_user, description="Create user"
        )
        registry.add(
            "/user/me",
            "GET",
            EVERYONE,
            self.get_current_user,
            description="Current user",
        )
        registry.add(
            "/user/{name}",
            "GET",
            STAFF,
            self.get_user,
            self_access_allowed=True,
            description="Get user",
        )
        registry.add(
            "/user/{name}",
            "DELETE",
            STAFF,
            self.delete_user,
            self_access_allowed=True,
            description="Delete user",
        )
        registry.add(
            "/user/{name}",
            "PUT",
            STAFF,
            self.modify_user,
            self_access_allowed=True,
            description="Modify user",
        )

    def _fetch(self, username: str) -> User:
        try:
            return self._store.get_user_by_username(username)
        except RecordNotFoundError as e:
            raise NotFoundError("User not found") from e
        except StoreError as e:
            raise InternalError("Failed to read user") from e

    async def get_users(self, request: Request, session: Session) -> Response:
        try:
            users = self._store.get_users()
        except StoreError as e:
            raise InternalError("Failed to list users") from e
        return JSONResponse([user.to_api() for user in users])

    async def create_user(self, request: Request, session: Session) -> Response:
        payload = await parse_body(request, UserPayload)

        if not payload.username:
            raise BadRequestError("No username given")
        if not payload.name:
            raise BadRequestError("No name given")
        if not payload.email:
            raise BadRequestError("No email given")
        if not payload.role:
            raise BadRequestError("No role given")
        role = parse_role(payload.role)
        if role is None:
            raise BadRequestError("Invalid role")

        user = User(
            username=payload.username,
            name=payload.name,
            email=payload.email,
            role=role,
        )
        try:
            created = self._store.create_user(user)
        except UserAlreadyExistsError as e:
            raise BadRequestError("User already exists") from e
        except StoreError as e:
            raise InternalError("Failed to create user") from e

        logger.info(
            "User created by admin",
            extra={
                "username": sanitize_for_log(created.username),
                "created_by": sanitize_for_log(session.username),
            },
        )
        return JSONResponse(created.to_api(), status_code=201)

    async def get_current_user(self, request: Request, session: Session) -> Response:
        # The enforcer guarantees an authenticated session here
        return JSONResponse(self._fetch(session.username or "").to_api())

    async def get_user(self, request: Request, session: Session) -> Response:
        username = request.path_params["name"]
        require_owner_or_admin(session, username)
        return JSONResponse(self._fetch(username).to_api())

    async def delete_user(self, request: Request, session: Session) -> Response:
        username = request.path_params["name"]
        require_owner_or_admin(session, username)
        try:
            self._store.remove_user(username)
        except RecordNotFoundError as e:
            raise NotFoundError("User not found") from e
        except StoreError as e:
            raise InternalError("Failed to delete user") from e

        logger.info(
            "User deleted",
            extra={
                "username": sanitize_for_log(username),
                "deleted_by": sanitize_for_log(session.username),
            },
        )
        return JSONResponse({"message": "Successfully deleted user"})

    async def modify_user(self, request: Request, session: Session) -> Response:
        username = request.path_params["name"]
        require_owner_or_admin(session, username)
        payload = await parse_body(request, UserPayload)
        current = self._fetch(username)

        changes: dict = {"username": username}
        if payload.name:
            changes["name"] = payload.name
        if payload.email:
            changes["email"] = payload.email
        if payload.role:
            role = parse_role(payload.role)
            if role is None:
                raise BadRequestError("Invalid role")
            if session.role is None or outranks(role, session.role):
                raise ForbiddenError()
            changes["role"] = role

        updated = current.model_copy(update=changes)
        try:
            self._store.modify_user(updated)
        except RecordNotFoundError as e:
            raise NotFoundError("User not found") from e
        except StoreError as e:
            raise InternalError("Failed to modify user") from e

        return JSONResponse(updated.to_api())
