"""Database models."""

from .folder import MediaFolder, ROOT_PARENT, ALL_FOLDERS, SYSTEM_FOLDER_SLUG
from .item import MediaItem
from .audit import AuditLog

__all__ = [
    "MediaFolder", "MediaItem", "AuditLog",
    "ROOT_PARENT", "ALL_FOLDERS", "SYSTEM_FOLDER_SLUG",
]
