"""Folder and tree schemas.

Wire keys are camelCase (``isSystem``, ``folderId``, ``newParent``); Python
attributes stay snake_case. Both spellings are accepted on input.
"""

import json
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from ..models.folder import ROOT_PARENT


class WireModel(BaseModel):
    """Base for every schema that crosses the transport."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- Folder representations ---

class FolderRecord(WireModel):
    """A single folder without its subtree."""
    id: int
    name: str
    slug: str
    parent: int = ROOT_PARENT
    count: int = 0
    is_system: bool = False


class FolderNode(FolderRecord):
    """Recursive tree node: children ordered by name."""
    children: List["FolderNode"] = []


class FlatFolder(FolderRecord):
    """Flat list entry; depth is the number of ancestors."""
    depth: int = 0


class FolderSnapshot(WireModel):
    """Full folder state as of the last successful operation."""
    tree: List[FolderNode] = []
    flat: List[FlatFolder] = []
    total_count: int = 0


class FolderOperationResponse(FolderSnapshot):
    """Response for folder mutations: the affected folder plus a fresh snapshot."""
    folder: Optional[FolderRecord] = None
    deleted_ids: List[int] = []
    reassigned_items: int = 0
    assigned_ids: List[int] = []
    skipped_ids: List[int] = []


# --- Action payloads ---

class CreateFolderPayload(WireModel):
    name: str = ""
    parent: int = ROOT_PARENT


class RenameFolderPayload(WireModel):
    folder_id: int
    name: str = ""


class DeleteFolderPayload(WireModel):
    folder_id: int
    reassign_to_system: bool = True


class MoveFolderPayload(WireModel):
    folder_id: int
    new_parent: int = ROOT_PARENT


class AssignMediaPayload(WireModel):
    """Items to file under a folder.

    ``itemIds`` may arrive as a list or as a JSON-encoded string. Non-positive
    and non-numeric ids are dropped.
    """
    item_ids: List[int] = []
    folder_id: int

    @field_validator("item_ids", mode="before")
    @classmethod
    def coerce_item_ids(cls, v: Any) -> List[int]:
        if v is None:
            return []
        if isinstance(v, str):
            try:
                v = json.loads(v) if v.strip() else []
            except json.JSONDecodeError:
                raise ValueError("itemIds must be a list of integers")
        if not isinstance(v, (list, tuple)):
            v = [v]
        ids: List[int] = []
        for raw in v:
            try:
                item_id = int(raw)
            except (TypeError, ValueError):
                continue
            if item_id > 0 and item_id not in ids:
                ids.append(item_id)
        return ids


class FolderContentsPayload(WireModel):
    """Paginated listing request; ``folderId`` goes through the query filter."""
    folder_id: Optional[Any] = None
    page: int = 1
    per_page: Optional[int] = None

    @field_validator("page")
    @classmethod
    def validate_page(cls, v: int) -> int:
        return max(v, 1)
