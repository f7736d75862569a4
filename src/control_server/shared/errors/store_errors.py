"""Error types raised by the user store.

Handlers translate these into API errors at the boundary. RecordNotFoundError
is the distinguishable "no such record" condition the provisioning bridge
relies on.
"""


class StoreError(Exception):
    """Base class for store failures."""

    pass


class RecordNotFoundError(StoreError):
    """No record matches the requested key."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class UserAlreadyExistsError(StoreError):
    """A user with this username is already stored.

    Raised by the conditional write, so concurrent creations of the same
    username are detected atomically.
    """

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"User already exists: {username}")
