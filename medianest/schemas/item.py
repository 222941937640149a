"""Media item schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from .folder import WireModel


class ItemCreate(WireModel):
    """Register an uploaded item. Without ``folderId`` it lands in the system folder."""
    title: str = ""
    filename: str
    url: Optional[str] = None
    mime_type: Optional[str] = None
    kind: str = "attachment"
    folder_id: Optional[int] = None

    @field_validator("filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Filename cannot be empty")
        return v


class ItemResponse(WireModel):
    id: int
    title: str
    filename: str
    url: Optional[str] = None
    mime_type: Optional[str] = None
    kind: str
    folder_id: Optional[int] = None
    created_at: Optional[datetime] = None


class FolderContentsResponse(WireModel):
    """One page of items for the active folder."""
    items: List[ItemResponse] = []
    total: int = 0
    pages: int = 0
    page: int = 1
    per_page: int = 0
