"""API routes."""

from .items import router as items_router
from .rpc import router as rpc_router

__all__ = ["items_router", "rpc_router"]
