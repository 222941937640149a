"""Item store: the narrow tag interface the folder core uses to reach media items.

``ItemStore`` is the contract. ``SqlItemStore`` implements it over the
``media_items`` table. Only items of the recognized kind are listed, counted,
or filed; other kinds are invisible to folder operations.
"""

from typing import Iterable, List, Optional, Protocol

from sqlalchemy.orm import Query, Session

from ..exceptions import ItemNotFoundError
from ..models import MediaItem
from ..schemas.item import ItemCreate
from ..services.query_filter import ItemFilter, apply_item_filter
from .base import BaseRepository

DEFAULT_ITEM_KIND = "attachment"


class ItemStore(Protocol):
    """Tag-based access to externally stored items."""

    recognized_kind: str

    def list_items(self, item_filter: ItemFilter, offset: int = 0, limit: Optional[int] = None) -> List[MediaItem]: ...

    def count_items(self, item_filter: ItemFilter) -> int: ...

    def get_item(self, item_id: int) -> Optional[MediaItem]: ...

    def get_item_kind(self, item_id: int) -> Optional[str]: ...

    def get_item_tag(self, item_id: int) -> Optional[int]: ...

    def set_item_tag(self, item_id: int, folder_id: Optional[int]) -> None: ...

    def count_items_by_tag(self, folder_id: Optional[int]) -> int: ...

    def retag_items(self, from_folder_ids: Iterable[int], to_folder_id: Optional[int]) -> int: ...

    def create_item(self, data: ItemCreate, folder_id: Optional[int]) -> MediaItem: ...


class SqlItemStore(BaseRepository[MediaItem]):
    """ItemStore over SQLAlchemy. Writes flush but never commit."""

    model_class = MediaItem
    not_found_error = ItemNotFoundError

    def __init__(self, db: Session, recognized_kind: str = DEFAULT_ITEM_KIND):
        super().__init__(db)
        self.recognized_kind = recognized_kind

    def _media_query(self) -> Query:
        """Items of the recognized kind only."""
        return self.db.query(MediaItem).filter(MediaItem.kind == self.recognized_kind)

    def _filtered(self, item_filter: ItemFilter) -> Query:
        return apply_item_filter(self._media_query(), item_filter)

    # --- Reads ---

    def list_items(self, item_filter: ItemFilter, offset: int = 0, limit: Optional[int] = None) -> List[MediaItem]:
        """Items matching *item_filter*, newest first."""
        query = self._filtered(item_filter).order_by(MediaItem.created_at.desc(), MediaItem.id.desc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count_items(self, item_filter: ItemFilter) -> int:
        return self._filtered(item_filter).count()

    def get_item(self, item_id: int) -> Optional[MediaItem]:
        return self.get_by_id_optional(item_id)

    def get_item_kind(self, item_id: int) -> Optional[str]:
        """Kind of the item, or None when the id does not resolve."""
        row = self.db.query(MediaItem.kind).filter(MediaItem.id == item_id).first()
        return row[0] if row else None

    def get_item_tag(self, item_id: int) -> Optional[int]:
        row = self.db.query(MediaItem.folder_id).filter(MediaItem.id == item_id).first()
        if row is None:
            raise ItemNotFoundError(item_id)
        return row[0]

    def count_items_by_tag(self, folder_id: Optional[int]) -> int:
        """Recognized items tagged with exactly *folder_id* (None counts untagged items)."""
        query = self._media_query()
        if folder_id is None:
            query = query.filter(MediaItem.folder_id.is_(None))
        else:
            query = query.filter(MediaItem.folder_id == folder_id)
        return query.count()

    # --- Writes ---

    def set_item_tag(self, item_id: int, folder_id: Optional[int]) -> None:
        item = self.get_by_id(item_id)
        item.folder_id = folder_id
        self.db.flush()

    def retag_items(self, from_folder_ids: Iterable[int], to_folder_id: Optional[int]) -> int:
        """Move every item tagged with any of *from_folder_ids* in one UPDATE."""
        ids = list(from_folder_ids)
        if not ids:
            return 0
        self.db.flush()
        count = (
            self.db.query(MediaItem)
            .filter(MediaItem.folder_id.in_(ids))
            .update({MediaItem.folder_id: to_folder_id}, synchronize_session=False)
        )
        # Bulk UPDATE bypasses the identity map.
        self.db.expire_all()
        return count

    def create_item(self, data: ItemCreate, folder_id: Optional[int]) -> MediaItem:
        item = MediaItem(
            title=data.title or data.filename,
            filename=data.filename,
            url=data.url,
            mime_type=data.mime_type,
            kind=data.kind,
            folder_id=folder_id,
        )
        self.db.add(item)
        self.db.flush()
        self.db.refresh(item)
        return item
