"""API routers for quizlog."""

from quizlog.api.routers import files_router

__all__ = [
    "files_router",
]
