"""API routers for the IELTS Test Bank application."""

from .tests import router as tests_router

__all__ = [
    "tests_router",
]
