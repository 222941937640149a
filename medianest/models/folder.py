"""Virtual media folder model."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String
from sqlalchemy.sql import func
from ..database import Base

# Parent value of top-level folders.
ROOT_PARENT = 0

# Virtual "All Files" pseudo-folder. Never persisted.
ALL_FOLDERS = -1

SYSTEM_FOLDER_SLUG = "uncategorized"


class MediaFolder(Base):
    """A node in the folder tree.

    Folders hold no files. Items point at a folder through their ``folder_id``
    tag, and ``count`` caches how many items point at this exact folder.
    """

    __tablename__ = "media_folders"
    __table_args__ = (
        Index("ix_media_folders_parent", "parent"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False, unique=True)

    # ROOT_PARENT (0) for top-level folders, otherwise the id of the parent folder.
    parent = Column(Integer, nullable=False, default=ROOT_PARENT)

    # Items tagged with exactly this folder (not cumulative over children).
    count = Column(Integer, nullable=False, default=0)

    is_system = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<MediaFolder id={self.id} name={self.name!r} parent={self.parent}>"
