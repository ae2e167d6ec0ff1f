"""API v1 routers."""

from . import contact

__all__ = [
    "contact",
]
