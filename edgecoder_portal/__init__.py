"""Persistent identity and device-enrollment store for the EdgeCoder portal."""
from .config import Settings
from .errors import (
    AlreadyConsumed,
    ConfigurationError,
    ConstraintViolation,
    Expired,
    MalformedInput,
    NotFound,
    PortalError,
)
from .portal import PortalStore

__all__ = [
    "AlreadyConsumed",
    "ConfigurationError",
    "ConstraintViolation",
    "Expired",
    "MalformedInput",
    "NotFound",
    "PortalError",
    "PortalStore",
    "Settings",
]

__version__ = "0.1.0"
