"""Media item model."""

from sqlalchemy import Column, Index, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from ..database import Base


class MediaItem(Base):
    """An uploaded media asset.

    ``folder_id`` is the single-valued folder tag. NULL means the item was
    never filed and is treated as belonging to the system folder.
    """

    __tablename__ = "media_items"
    __table_args__ = (
        Index("ix_media_items_folder_id", "folder_id"),
        Index("ix_media_items_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False, default="")
    filename = Column(String(255), nullable=False, default="")
    url = Column(Text, nullable=True)
    mime_type = Column(String(100), nullable=True)

    # Only items of the recognized kind ("attachment" by default) can be filed.
    kind = Column(String(50), nullable=False, default="attachment")

    # Folder tag. Not a foreign key: folder deletion retags items explicitly.
    folder_id = Column(Integer, nullable=True, default=None)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
