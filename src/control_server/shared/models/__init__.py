"""Shared models for the control server.

- User: Locally stored user, keyed by GitHub login
- Image: Disk image owned by a user
"""

from src.control_server.shared.models.image import Image, ImagePayload
from src.control_server.shared.models.user import User, UserPayload

__all__ = [
    "Image",
    "ImagePayload",
    "User",
    "UserPayload",
]
