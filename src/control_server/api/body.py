"""Request body decoding shared by the CRUD handlers."""

from __future__ import annotations

import logging
from typing import TypeVar

from pydantic import BaseModel, ValidationError
from starlette.requests import Request

from src.control_server.shared.errors import BadRequestError
from src.control_server.shared.logging_utils import get_safe_error_info

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


async def parse_body(request: Request, model: type[ModelT]) -> ModelT:
    """Decode the JSON body into ``model``.

    Raises:
        BadRequestError: Body is not JSON or does not fit the model
    """
    try:
        data = await request.json()
    except ValueError as e:
        logger.warning("Request body is not JSON", extra=get_safe_error_info(e))
        raise BadRequestError("Invalid JSON body") from e

    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(
            "Request body failed validation",
            extra={"model": model.__name__, "error_count": e.error_count()},
        )
        raise BadRequestError("Invalid request body") from e
