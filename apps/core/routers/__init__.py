"""
API routers for Lodestar Core endpoints.
"""

from .extensions import router as extensions_router
from .server import router as server_router

__all__ = ["extensions_router", "server_router"]
