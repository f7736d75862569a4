"""Image handlers: disk images attached to a user."""

from __future__ import annotations

import logging

from fastapi.responses import JSONResponse
from starlette.requests import Request
from starlette.responses import Response

from src.control_server.api.body import parse_body
from src.control_server.shared.auth.enums import Role
from src.control_server.shared.auth.session import Session
from src.control_server.shared.errors import (
    BadRequestError,
    InternalError,
    NotFoundError,
    RecordNotFoundError,
    StoreError,
)
from src.control_server.shared.logging_utils import sanitize_for_log
from src.control_server.shared.models.image import ImagePayload
from src.control_server.shared.routing import RouteRegistry
from src.control_server.shared.user_store import UserStore

logger = logging.getLogger(__name__)

STAFF = (Role.MODERATOR, Role.ADMIN)


class ImageAPI:
    """Handlers for a user's images."""

    def __init__(self, store: UserStore):
        self._store = store

    def register_routes(self, registry: RouteRegistry) -> None:
        registry.add(
            "/user/{name}/image",
            "POST",
            STAFF,
            self.create_image,
            self_access_allowed=True,
            description="Create image",
        )
        registry.add(
            "/user/{name}/images",
            "GET",
            STAFF,
            self.get_images,
            self_access_allowed=True,
            description="List images",
        )
        registry.add(
            "/user/{name}/images/{image_name}",
            "GET",
            STAFF,
            self.get_images_by_name,
            self_access_allowed=True,
            description="List images by name",
        )

    def _require_user(self, username: str) -> None:
        try:
            self._store.get_user_by_username(username)
        except RecordNotFoundError as e:
            raise NotFoundError("User not found") from e
        except StoreError as e:
            raise InternalError("Failed to read user") from e

    async def create_image(self, request: Request, session: Session) -> Response:
        username = request.path_params["name"]
        payload = await parse_body(request, ImagePayload)
        if not payload.name:
            raise BadRequestError("No image name given")

        self._require_user(username)
        try:
            image = self._store.create_image(username, payload.name, payload.disk_uuid)
        except StoreError as e:
            raise InternalError("Failed to create image") from e

        logger.info(
            "Image created",
            extra={
                "username": sanitize_for_log(username),
                "image_uuid": image.uuid,
            },
        )
        return JSONResponse(image.to_api(), status_code=201)

    async def get_images(self, request: Request, session: Session) -> Response:
        username = request.path_params["name"]
        try:
            images = self._store.get_images_by_username(username)
        except StoreError as e:
            raise InternalError("Failed to list images") from e
        return JSONResponse([image.to_api() for image in images])

    async def get_images_by_name(self, request: Request, session: Session) -> Response:
        username = request.path_params["name"]
        image_name = request.path_params["image_name"]
        try:
            images = self._store.get_images_by_name_and_username(image_name, username)
        except StoreError as e:
            raise InternalError("Failed to list images") from e
        return JSONResponse([image.to_api() for image in images])
