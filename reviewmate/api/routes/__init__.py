"""Route modules for the public API."""

from . import auth, automation, internal, locations

__all__ = [
    "auth",
    "automation",
    "internal",
    "locations",
]
