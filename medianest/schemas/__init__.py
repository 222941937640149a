"""Pydantic schemas for API validation."""

from .folder import (
    WireModel,
    FolderRecord,
    FolderNode,
    FlatFolder,
    FolderSnapshot,
    FolderOperationResponse,
    CreateFolderPayload,
    RenameFolderPayload,
    DeleteFolderPayload,
    MoveFolderPayload,
    AssignMediaPayload,
    FolderContentsPayload,
)
from .item import ItemCreate, ItemResponse, FolderContentsResponse
from .rpc import RpcRequest, RpcResponse

__all__ = [
    "WireModel",
    "FolderRecord",
    "FolderNode",
    "FlatFolder",
    "FolderSnapshot",
    "FolderOperationResponse",
    "CreateFolderPayload",
    "RenameFolderPayload",
    "DeleteFolderPayload",
    "MoveFolderPayload",
    "AssignMediaPayload",
    "FolderContentsPayload",
    "ItemCreate",
    "ItemResponse",
    "FolderContentsResponse",
    "RpcRequest",
    "RpcResponse",
]
