"""Envelope schemas for the action transport."""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class RpcRequest(BaseModel):
    """Action name plus its payload."""
    action: str
    payload: Dict[str, Any] = {}


class RpcResponse(BaseModel):
    """``{"success": true, "data": ...}`` or ``{"success": false, "error": {...}}``."""
    success: bool
    data: Optional[Any] = None
    error: Optional[Dict[str, Any]] = None

    @classmethod
    def ok(cls, data: Any) -> "RpcResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: Dict[str, Any]) -> "RpcResponse":
        return cls(success=False, error=error)
