"""Route modules."""

from .flyer_requests import router as flyer_requests_router
from .internal import router as internal_router

__all__ = ["flyer_requests_router", "internal_router"]
