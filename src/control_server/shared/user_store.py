"""
User Store
==========

Persistence for users and their images in a single DynamoDB table.

Item layout:
    user:  PK=USER#<username>  SK=PROFILE
    image: PK=USER#<username>  SK=IMAGE#<uuid>

For On-Call Engineers:
    - RecordNotFoundError is expected traffic (first login, bad URL)
    - Any other StoreError surfaces as a 500 and is logged with the boto
      error code only
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Protocol

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from src.control_server.shared.errors import (
    RecordNotFoundError,
    StoreError,
    UserAlreadyExistsError,
)
from src.control_server.shared.logging_utils import (
    get_safe_error_info,
    sanitize_for_log,
)
from src.control_server.shared.models.image import IMAGE_PREFIX, Image
from src.control_server.shared.models.user import PROFILE_SK, User, user_pk

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class UserStore(Protocol):
    """Operations the handlers and provisioning need from storage."""

    def get_user_by_username(self, username: str) -> User: ...

    def create_user(self, user: User) -> User: ...

    def modify_user(self, user: User) -> User: ...

    def remove_user(self, username: str) -> None: ...

    def get_users(self) -> list[User]: ...

    def create_image(self, username: str, name: str, disk_uuid: str = "") -> Image: ...

    def get_images_by_username(self, username: str) -> list[Image]: ...

    def get_images_by_name_and_username(
        self, name: str, username: str
    ) -> list[Image]: ...


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


class DynamoUserStore:
    """UserStore backed by a boto3 DynamoDB Table resource."""

    def __init__(self, table: Any):
        self._table = table

    def _fail(self, operation: str, error: Exception) -> StoreError:
        info = get_safe_error_info(error)
        if isinstance(error, ClientError):
            info["aws_error_code"] = _error_code(error)
        logger.error(f"DynamoDB {operation} failed", extra=info)
        return StoreError(f"{operation} failed")

    def get_user_by_username(self, username: str) -> User:
        try:
            response = self._table.get_item(
                Key={"PK": user_pk(username), "SK": PROFILE_SK}
            )
        except (ClientError, BotoCoreError) as e:
            raise self._fail("get_user", e) from e

        item = response.get("Item")
        if not item:
            raise RecordNotFoundError("user", username)
        return User.from_dynamodb_item(item)

    def create_user(self, user: User) -> User:
        """Insert a user, failing if the username is taken."""
        try:
            self._table.put_item(
                Item=user.to_dynamodb_item(),
                ConditionExpression="attribute_not_exists(PK)",
            )
        except ClientError as e:
            if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                raise UserAlreadyExistsError(user.username) from e
            raise self._fail("create_user", e) from e
        except BotoCoreError as e:
            raise self._fail("create_user", e) from e

        logger.info(
            "Created user",
            extra={
                "username": sanitize_for_log(user.username),
                "role": user.role.value,
            },
        )
        return user

    def modify_user(self, user: User) -> User:
        """Replace an existing user record."""
        try:
            self._table.put_item(
                Item=user.to_dynamodb_item(),
                ConditionExpression="attribute_exists(PK)",
            )
        except ClientError as e:
            if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                raise RecordNotFoundError("user", user.username) from e
            raise self._fail("modify_user", e) from e
        except BotoCoreError as e:
            raise self._fail("modify_user", e) from e
        return user

    def remove_user(self, username: str) -> None:
        """Delete a user and every image they own.

        Images are deleted before the profile; a failed image cleanup leaves
        the profile in place.
        """
        images = self.get_images_by_username(username)
        try:
            with self._table.batch_writer() as batch:
                for image in images:
                    batch.delete_item(Key={"PK": image.pk, "SK": image.sk})
        except (ClientError, BotoCoreError) as e:
            raise self._fail("remove_user_images", e) from e

        try:
            self._table.delete_item(
                Key={"PK": user_pk(username), "SK": PROFILE_SK},
                ConditionExpression="attribute_exists(PK)",
            )
        except ClientError as e:
            if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                raise RecordNotFoundError("user", username) from e
            raise self._fail("remove_user", e) from e
        except BotoCoreError as e:
            raise self._fail("remove_user", e) from e

        logger.info(
            "Removed user",
            extra={
                "username": sanitize_for_log(username),
                "images_removed": len(images),
            },
        )

    def get_users(self) -> list[User]:
        scan_kwargs: dict[str, Any] = {"FilterExpression": Attr("SK").eq(PROFILE_SK)}
        users: list[User] = []
        try:
            while True:
                response = self._table.scan(**scan_kwargs)
                users.extend(
                    User.from_dynamodb_item(item) for item in response.get("Items", [])
                )
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            raise self._fail("get_users", e) from e

        return sorted(users, key=lambda user: user.username)

    def create_image(self, username: str, name: str, disk_uuid: str = "") -> Image:
        image = Image(
            name=name,
            uuid=str(uuid.uuid4()),
            disk_uuid=disk_uuid,
            username=username,
        )
        try:
            self._table.put_item(
                Item=image.to_dynamodb_item(),
                ConditionExpression="attribute_not_exists(SK)",
            )
        except (ClientError, BotoCoreError) as e:
            raise self._fail("create_image", e) from e
        return image

    def _query_images(self, username: str, **extra: Any) -> list[Image]:
        query_kwargs: dict[str, Any] = {
            "KeyConditionExpression": Key("PK").eq(user_pk(username))
            & Key("SK").begins_with(IMAGE_PREFIX),
            **extra,
        }
        images: list[Image] = []
        try:
            while True:
                response = self._table.query(**query_kwargs)
                images.extend(
                    Image.from_dynamodb_item(item) for item in response.get("Items", [])
                )
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                query_kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            raise self._fail("get_images", e) from e
        return images

    def get_images_by_username(self, username: str) -> list[Image]:
        return self._query_images(username)

    def get_images_by_name_and_username(self, name: str, username: str) -> list[Image]:
        return self._query_images(username, FilterExpression=Attr("name").eq(name))
