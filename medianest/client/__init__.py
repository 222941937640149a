"""Async client: transport, tree controller, rendering and library integration."""

from .library import MediaLibrary
from .rendering import TextTreeView, TreeRow, build_rows, dropdown_options
from .transport import RpcError, RpcTransport, TransportError
from .tree_controller import ControllerState, FolderTreeController

__all__ = [
    "MediaLibrary",
    "TextTreeView",
    "TreeRow",
    "build_rows",
    "dropdown_options",
    "RpcError",
    "RpcTransport",
    "TransportError",
    "ControllerState",
    "FolderTreeController",
]
