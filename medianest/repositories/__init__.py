"""Data access repositories."""

from .base import BaseRepository
from .folder_repository import FolderTreeStore
from .item_repository import ItemStore, SqlItemStore

__all__ = [
    "BaseRepository",
    "FolderTreeStore",
    "ItemStore",
    "SqlItemStore",
]
