"""Deep module for all folder operations: create, rename, delete, move, assign.

Callers interact with high-level operations and never touch counts, slugs,
the system folder or transaction boundaries themselves. Every mutation runs
under the context's tree lock inside a single transaction and returns a full
snapshot of the tree as it stands after the commit.
"""

import logging
import math
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional

import sqlalchemy.exc
from sqlalchemy.orm import Session

from ..context import AppContext
from ..exceptions import DatabaseError, ItemNotFoundError, SystemProtectedError, ValidationError
from ..models.folder import ALL_FOLDERS, MediaFolder, ROOT_PARENT
from ..repositories.folder_repository import FolderTreeStore
from ..repositories.item_repository import ItemStore, SqlItemStore
from ..schemas.folder import (
    FlatFolder,
    FolderNode,
    FolderOperationResponse,
    FolderRecord,
    FolderSnapshot,
)
from ..schemas.item import FolderContentsResponse, ItemCreate, ItemResponse
from . import audit_service
from .query_filter import UNFILTERED, FolderFilter, bind_system_folder, parse_active_folder

logger = logging.getLogger(__name__)


class FolderService:
    """All folder and tree operations behind a simple interface.

    Public methods:
        create_folder       -- new empty folder under a parent (0 = root)
        rename_folder       -- new name and slug; no-op for the current name
        delete_folder       -- remove a subtree, reassigning its items
        move_folder         -- reparent with cycle prevention
        assign_items        -- tag items with a folder, recount touched folders
        snapshot            -- tree + flat list + total item count
        get_folder_contents -- paginated listing for an active-folder value
        register_item       -- record an upload, filed in a folder
        get_item            -- single item lookup
    """

    def __init__(
        self,
        ctx: AppContext,
        db: Session,
        item_store: Optional[ItemStore] = None,
        user_id: Optional[str] = None,
    ):
        self.ctx = ctx
        self.db = db
        self.settings = ctx.settings
        self.tree = FolderTreeStore(db, system_folder_name=self.settings.system_folder_name)
        self.items = item_store or SqlItemStore(db, recognized_kind=self.settings.recognized_item_kind)
        self.user_id = user_id

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_folder(self, name: str, parent: int = ROOT_PARENT) -> FolderOperationResponse:
        with self._transaction():
            self.tree.ensure_system_folder()
            folder = self.tree.insert(name, parent)
            folder_id = folder.id
            response = self._response(folder=folder)

        logger.info("Folder created", extra={"folder_id": folder_id, "parent": parent})
        self._audit("create", folder_id, {"name": response.folder.name, "parent": parent})
        return response

    def rename_folder(self, folder_id: int, name: str) -> FolderOperationResponse:
        with self._transaction():
            old_name = self.tree.get_or_raise(folder_id).name
            folder = self.tree.rename(folder_id, name)
            response = self._response(folder=folder)

        if response.folder.name != old_name:
            logger.info("Folder renamed", extra={"folder_id": folder_id})
            self._audit("rename", folder_id, {"from": old_name, "to": response.folder.name})
        return response

    def delete_folder(self, folder_id: int, reassign_to_system: bool = True) -> FolderOperationResponse:
        """Delete *folder_id* and its whole subtree.

        Items in any removed folder are retagged to the system folder in one
        batch, or untagged when *reassign_to_system* is False (untagged items
        still list under the system folder). Descendants go deepest-first.
        """
        with self._transaction():
            folder = self.tree.get_or_raise(folder_id)
            if folder.is_system:
                raise SystemProtectedError(folder_id, "deleted")
            system_id = self.tree.ensure_system_folder().id

            descendants = self.tree.descendants_of(folder_id)
            removal_order = [f.id for f, _ in sorted(descendants, key=lambda pair: pair[1], reverse=True)]
            doomed = [folder_id] + removal_order

            reassigned = self.items.retag_items(doomed, system_id if reassign_to_system else None)
            for descendant_id in removal_order:
                self.tree.remove(descendant_id)
            self.tree.remove(folder_id)

            self._refresh_counts([system_id])
            response = self._response(deleted_ids=doomed, reassigned_items=reassigned)

        logger.info(
            "Folder deleted",
            extra={"folder_id": folder_id, "descendants": len(removal_order), "reassigned_items": reassigned},
        )
        self._audit("delete", folder_id, {"deleted_ids": doomed, "reassigned_items": reassigned})
        return response

    def move_folder(self, folder_id: int, new_parent: int = ROOT_PARENT) -> FolderOperationResponse:
        with self._transaction():
            old_parent = self.tree.get_or_raise(folder_id).parent
            folder = self.tree.reparent(folder_id, new_parent)
            response = self._response(folder=folder)

        if old_parent != new_parent:
            logger.info("Folder moved", extra={"folder_id": folder_id, "from": old_parent, "to": new_parent})
            self._audit("move", folder_id, {"from": old_parent, "to": new_parent})
        return response

    def assign_items(self, item_ids: Iterable[int], folder_id: int) -> FolderOperationResponse:
        """File items under *folder_id*.

        Unknown ids and items of another kind are skipped and reported in
        ``skipped_ids``. Counts are recomputed for the target and for every
        folder an item was taken from.
        """
        ids: List[int] = []
        for item_id in item_ids:
            if item_id > 0 and item_id not in ids:
                ids.append(item_id)
        if not ids:
            raise ValidationError("No items specified.", field="item_ids")

        with self._transaction():
            target = self.tree.get_or_raise(folder_id)
            system_id = self.tree.ensure_system_folder().id
            touched = {target.id}
            assigned: List[int] = []
            skipped: List[int] = []

            for item_id in ids:
                if self.items.get_item_kind(item_id) != self.items.recognized_kind:
                    skipped.append(item_id)
                    continue
                prior = self.items.get_item_tag(item_id)
                touched.add(prior if prior is not None else system_id)
                self.items.set_item_tag(item_id, target.id)
                assigned.append(item_id)

            self._refresh_counts(touched)
            response = self._response(folder=target, assigned_ids=assigned, skipped_ids=skipped)

        if skipped:
            logger.debug("Skipped unassignable items", extra={"item_ids": skipped})
        if assigned:
            logger.info("Items assigned", extra={"folder_id": folder_id, "count": len(assigned)})
            self._audit("assign", folder_id, {"item_ids": assigned})
        return response

    def register_item(self, data: ItemCreate) -> ItemResponse:
        """Record a new upload.

        Items of the recognized kind land in ``data.folder_id`` or, when that
        is unset, 0 or -1, in the system folder.
        """
        with self._transaction():
            system_id = self.tree.ensure_system_folder().id
            target: Optional[int] = None
            if data.kind == self.items.recognized_kind:
                if data.folder_id in (None, ROOT_PARENT, ALL_FOLDERS):
                    target = system_id
                else:
                    target = self.tree.get_or_raise(data.folder_id).id
            item = self.items.create_item(data, target)
            if target is not None:
                self._refresh_counts([target])
            result = ItemResponse.model_validate(item)

        logger.info("Item registered", extra={"item_id": result.id, "folder_id": target})
        self._audit("register", result.id, {"folder_id": target}, resource_type="item")
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> FolderSnapshot:
        """Current tree state; creates the system folder on first access."""
        with self._transaction():
            self.tree.ensure_system_folder()
            return self._snapshot()

    def get_tree(self) -> List[FolderNode]:
        return self.tree.get_tree()

    def get_flat(self) -> List[FlatFolder]:
        return self.tree.get_flat()

    def total_item_count(self) -> int:
        """Number of recognized items, for the "All Files" row."""
        return self.items.count_items(UNFILTERED)

    def get_folder_contents(
        self,
        active_folder: Any = None,
        page: int = 1,
        per_page: Optional[int] = None,
    ) -> FolderContentsResponse:
        item_filter = parse_active_folder(active_folder)
        if isinstance(item_filter, FolderFilter):
            self.tree.get_or_raise(item_filter.folder_id)
        system = self.tree.system_folder()
        item_filter = bind_system_folder(item_filter, system.id if system else None)

        per_page = per_page or self.settings.default_per_page
        per_page = max(1, min(per_page, self.settings.max_per_page))
        page = max(page, 1)

        total = self.items.count_items(item_filter)
        items = self.items.list_items(item_filter, offset=(page - 1) * per_page, limit=per_page)
        return FolderContentsResponse(
            items=[ItemResponse.model_validate(item) for item in items],
            total=total,
            pages=math.ceil(total / per_page),
            page=page,
            per_page=per_page,
        )

    def get_item(self, item_id: int) -> ItemResponse:
        item = self.items.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return ItemResponse.model_validate(item)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Serialize on the tree, in this process and in the database.

        Commits on success and rolls back on any error. The database lock is
        taken before the body runs, so validation reads see the rows other
        workers committed.
        """
        with self.ctx.tree_lock:
            try:
                self.tree.lock_tree()
                yield
                self.db.commit()
            except sqlalchemy.exc.SQLAlchemyError as e:
                self.db.rollback()
                logger.error("Folder transaction failed: %s", e)
                raise DatabaseError("Folder operation failed", original_error=e) from e
            except Exception:
                self.db.rollback()
                raise

    def _refresh_counts(self, folder_ids: Iterable[int]) -> None:
        """Recompute cached counts from the post-write item state."""
        self.db.flush()
        for folder_id in set(folder_ids):
            folder = self.tree.get(folder_id)
            if folder is None:
                continue
            count = self.items.count_items_by_tag(folder.id)
            if folder.is_system:
                count += self.items.count_items_by_tag(None)
            self.tree.set_count(folder.id, count)

    def _snapshot(self) -> FolderSnapshot:
        return FolderSnapshot(
            tree=self.get_tree(),
            flat=self.get_flat(),
            total_count=self.total_item_count(),
        )

    def _response(self, folder: Optional[MediaFolder] = None, **fields: Any) -> FolderOperationResponse:
        snapshot = self._snapshot()
        return FolderOperationResponse(
            tree=snapshot.tree,
            flat=snapshot.flat,
            total_count=snapshot.total_count,
            folder=FolderRecord.model_validate(folder) if folder is not None else None,
            **fields,
        )

    def _audit(self, action: str, resource_id: int, details: dict, resource_type: str = "folder") -> None:
        audit_service.log(
            self.db,
            user_id=self.user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
        )
