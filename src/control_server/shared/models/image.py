"""Disk image records owned by a user."""

from pydantic import BaseModel, ConfigDict, Field

from src.control_server.shared.models.user import user_pk

IMAGE_PREFIX = "IMAGE#"


class Image(BaseModel):
    """A named image belonging to a user, identified by a generated UUID."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., alias="Name")
    uuid: str = Field(..., alias="UUID")
    disk_uuid: str = Field("", alias="DiskUUID")
    username: str = Field(..., alias="Username")

    @property
    def pk(self) -> str:
        """DynamoDB partition key (the owner's)."""
        return user_pk(self.username)

    @property
    def sk(self) -> str:
        """DynamoDB sort key."""
        return f"{IMAGE_PREFIX}{self.uuid}"

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format."""
        return {
            "PK": self.pk,
            "SK": self.sk,
            "name": self.name,
            "uuid": self.uuid,
            "disk_uuid": self.disk_uuid,
            "username": self.username,
            "entity_type": "IMAGE",
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "Image":
        """Create Image from DynamoDB item."""
        return cls(
            name=item["name"],
            uuid=item["uuid"],
            disk_uuid=item.get("disk_uuid", ""),
            username=item["username"],
        )


class ImagePayload(BaseModel):
    """Request body for creating an image."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field("", alias="Name")
    disk_uuid: str = Field("", alias="DiskUUID")
