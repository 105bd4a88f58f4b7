"""API routes module."""

from clutch.api.routes.me import router as me_router
from clutch.api.routes.topics import router as topics_router

__all__ = [
    "me_router",
    "topics_router",
]
