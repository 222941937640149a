"""Active-folder selection to item-listing filter.

The legacy selection values collapse to two states:

    Unfiltered        -- None, "", 0, and the "All Files" alias -1 / "all"
    FolderFilter(id)  -- items tagged with exactly that folder

Listings are never cumulative: a parent folder's listing does not include
its children's items. The system folder also matches untagged items.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from sqlalchemy import or_

from ..exceptions import ValidationError
from ..models.folder import ALL_FOLDERS, ROOT_PARENT
from ..models.item import MediaItem

logger = logging.getLogger(__name__)

_ALL_ALIASES = frozenset({"all", str(ALL_FOLDERS)})


@dataclass(frozen=True)
class Unfiltered:
    """No folder restriction."""

    def to_wire(self) -> int:
        return ALL_FOLDERS


@dataclass(frozen=True)
class FolderFilter:
    """Restrict to one folder. ``include_untagged`` is set for the system folder."""

    folder_id: int
    include_untagged: bool = False

    def to_wire(self) -> int:
        return self.folder_id


ItemFilter = Union[Unfiltered, FolderFilter]

UNFILTERED = Unfiltered()


def parse_active_folder(value: Any) -> ItemFilter:
    """Translate a raw active-folder value from a request or the UI.

    Raises:
        ValidationError: for negative ids other than -1, or non-numeric values.
    """
    if value is None:
        return UNFILTERED

    if isinstance(value, str):
        text = value.strip().lower()
        if text == "":
            return UNFILTERED
        if text in _ALL_ALIASES:
            logger.debug("Active folder %r treated as unfiltered (compatibility alias)", value)
            return UNFILTERED
        try:
            value = int(text)
        except ValueError:
            raise ValidationError(f"Invalid folder filter: {value!r}", field="media_folder")

    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Invalid folder filter: {value!r}", field="media_folder")

    if value == ROOT_PARENT:
        return UNFILTERED
    if value == ALL_FOLDERS:
        logger.debug("Active folder -1 treated as unfiltered (compatibility alias)")
        return UNFILTERED
    if value < 0:
        raise ValidationError(f"Invalid folder filter: {value}", field="media_folder")
    return FolderFilter(value)


def bind_system_folder(item_filter: ItemFilter, system_folder_id: Optional[int]) -> ItemFilter:
    """Mark a filter on the system folder so it also matches untagged items."""
    if (
        isinstance(item_filter, FolderFilter)
        and system_folder_id is not None
        and item_filter.folder_id == system_folder_id
    ):
        return FolderFilter(item_filter.folder_id, include_untagged=True)
    return item_filter


def item_filter_clause(item_filter: ItemFilter):
    """SQLAlchemy predicate for *item_filter*, or None when unfiltered."""
    if not isinstance(item_filter, FolderFilter):
        return None
    if item_filter.include_untagged:
        return or_(MediaItem.folder_id == item_filter.folder_id, MediaItem.folder_id.is_(None))
    return MediaItem.folder_id == item_filter.folder_id


def apply_item_filter(query, item_filter: ItemFilter, system_folder_id: Optional[int] = None):
    """Narrow an item *query* to the active folder."""
    clause = item_filter_clause(bind_system_folder(item_filter, system_folder_id))
    if clause is None:
        return query
    return query.filter(clause)
