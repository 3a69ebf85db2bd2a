"""Error types raised by the portal store."""
from __future__ import annotations


class PortalError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(PortalError):
    """Settings could not be loaded or are inconsistent."""


class ConstraintViolation(PortalError):
    """A create operation collided with an existing unique key."""

    def __init__(self, entity: str, detail: str = "") -> None:
        self.entity = entity
        self.detail = detail
        message = f"{entity} already exists"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MalformedInput(PortalError):
    """A boundary value could not be interpreted."""


# The following are reported by store operations as ``None`` rather than
# raised. They are kept so that callers which need a named reason can raise
# one of their own.


class NotFound(PortalError):
    """No row matched the given id or hash."""


class Expired(NotFound):
    """The row exists but its expiry has passed."""


class AlreadyConsumed(NotFound):
    """The single-use row has already been consumed."""
