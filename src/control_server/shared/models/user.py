"""User model with DynamoDB keys.

JSON field names are capitalized (Username, Name, Email, Role) to stay
compatible with existing API clients; Python code uses snake_case.
"""

from pydantic import BaseModel, ConfigDict, Field

from src.control_server.shared.auth.enums import Role

USER_PREFIX = "USER#"
PROFILE_SK = "PROFILE"


def user_pk(username: str) -> str:
    """DynamoDB partition key shared by a user and their images."""
    return f"{USER_PREFIX}{username}"


class User(BaseModel):
    """Locally stored user, keyed by the GitHub login."""

    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., alias="Username")
    name: str = Field("", alias="Name")
    email: str = Field("", alias="Email")
    role: Role = Field(Role.USER, alias="Role")

    @property
    def pk(self) -> str:
        """DynamoDB partition key."""
        return user_pk(self.username)

    @property
    def sk(self) -> str:
        """DynamoDB sort key."""
        return PROFILE_SK

    def to_api(self) -> dict:
        """Serialize with the public field names."""
        return self.model_dump(by_alias=True, mode="json")

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format."""
        return {
            "PK": self.pk,
            "SK": self.sk,
            "username": self.username,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "entity_type": "USER",
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "User":
        """Create User from DynamoDB item."""
        return cls(
            username=item["username"],
            name=item.get("name", ""),
            email=item.get("email", ""),
            role=item.get("role", Role.USER.value),
        )


class UserPayload(BaseModel):
    """Request body for creating or modifying a user.

    Every field is optional here; handlers decide which ones are required so
    they can report the missing field by name. Role stays a plain string for
    the same reason.
    """

    model_config = ConfigDict(populate_by_name=True)

    username: str = Field("", alias="Username")
    name: str = Field("", alias="Name")
    email: str = Field("", alias="Email")
    role: str = Field("", alias="Role")
