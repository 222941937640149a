"""Tree store: the canonical folder hierarchy and its mutation primitives.

Every primitive checks the tree invariants before writing and raises a
ValidationError subclass naming the broken rule:

    empty-name        name blank after trimming
    duplicate-name    sibling with the same name (case-insensitive)
    cycle             folder would become its own ancestor
    not-found         folder or parent id does not resolve
    system-protected  rename/move/remove of the system folder
    has-children      remove of a folder that still has subfolders

Primitives only flush. The caller owns the transaction.
"""

import logging
import re
import unicodedata
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..database import is_sqlite_memory
from ..exceptions import (
    CycleError,
    FolderNotFoundError,
    SystemProtectedError,
    ValidationError,
)
from ..models.folder import MediaFolder, ROOT_PARENT, SYSTEM_FOLDER_SLUG
from ..schemas.folder import FlatFolder, FolderNode
from .base import BaseRepository

MAX_NAME_LENGTH = 200

logger = logging.getLogger(__name__)


def sort_key(folder: MediaFolder) -> Tuple[str, str, int]:
    """Sibling order: case-insensitive name, then exact name, then id."""
    return (folder.name.casefold(), folder.name, folder.id)


def clean_name(name: Optional[str]) -> str:
    """Trim, drop control characters, collapse inner whitespace."""
    text = "".join(ch for ch in (name or "") if unicodedata.category(ch)[0] != "C" or ch in "\t\n ")
    return re.sub(r"\s+", " ", text).strip()


def slugify(name: str) -> str:
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_name.lower()).strip("-")
    return slug or "folder"


class FolderTreeStore(BaseRepository[MediaFolder]):
    """Folder hierarchy keyed by integer id with ROOT_PARENT (0) as the root sentinel."""

    model_class = MediaFolder
    not_found_error = FolderNotFoundError

    def __init__(self, db: Session, system_folder_name: str = "Uncategorized"):
        super().__init__(db)
        self.system_folder_name = system_folder_name

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    def lock_tree(self) -> None:
        """Take the database write lock on the tree for the current transaction.

        Call before any read a mutation validates against. Server databases
        lock the system folder row (SELECT ... FOR UPDATE); a SQLite file
        takes its write lock up front with BEGIN IMMEDIATE. An in-memory
        SQLite database is private to one process, where the context's tree
        lock already serializes writers.
        """
        bind = self.db.get_bind()
        if bind.dialect.name == "sqlite":
            if is_sqlite_memory(str(bind.url)):
                return
            connection = self.db.connection()
            if not connection.connection.dbapi_connection.in_transaction:
                connection.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            self.db.query(MediaFolder).filter(MediaFolder.is_system.is_(True)).with_for_update().first()
        # Rows loaded before the lock was granted may be stale.
        self.db.expire_all()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, folder_id: int) -> Optional[MediaFolder]:
        return self.get_by_id_optional(folder_id)

    def get_or_raise(self, folder_id: int, field: str = "folder_id") -> MediaFolder:
        folder = self.get_by_id_optional(folder_id)
        if folder is None:
            raise FolderNotFoundError(folder_id, field=field)
        return folder

    def system_folder(self) -> Optional[MediaFolder]:
        return self.db.query(MediaFolder).filter(MediaFolder.is_system.is_(True)).first()

    def ensure_system_folder(self) -> MediaFolder:
        """Return the system folder, creating it on first use.

        A pre-existing folder with the reserved slug is adopted instead of
        creating a second one.
        """
        folder = self.system_folder()
        if folder is not None:
            return folder

        folder = self.db.query(MediaFolder).filter(MediaFolder.slug == SYSTEM_FOLDER_SLUG).first()
        if folder is not None:
            folder.is_system = True
            logger.info("Adopted existing folder as system folder", extra={"folder_id": folder.id})
        else:
            folder = MediaFolder(
                name=self.system_folder_name,
                slug=SYSTEM_FOLDER_SLUG,
                parent=ROOT_PARENT,
                count=0,
                is_system=True,
            )
            self.db.add(folder)
            logger.info("Created system folder", extra={"folder_name": self.system_folder_name})
        self.db.flush()
        return folder

    def _children_index(self) -> Dict[int, List[MediaFolder]]:
        index: Dict[int, List[MediaFolder]] = {}
        for folder in self.db.query(MediaFolder).all():
            index.setdefault(folder.parent, []).append(folder)
        for siblings in index.values():
            siblings.sort(key=sort_key)
        return index

    def get_tree(self, parent: int = ROOT_PARENT) -> List[FolderNode]:
        """Nested folders under *parent*, siblings ordered by name.

        Folders whose parent chain does not lead back to *parent* are not
        reachable and do not appear.
        """
        index = self._children_index()
        visited: set[int] = set()

        def build_children(parent_id: int) -> List[FolderNode]:
            nodes: List[FolderNode] = []
            for folder in index.get(parent_id, []):
                if folder.id in visited:
                    continue
                visited.add(folder.id)
                node = FolderNode.model_validate(folder)
                node.children = build_children(folder.id)
                nodes.append(node)
            return nodes

        return build_children(parent)

    def get_flat(self) -> List[FlatFolder]:
        """Every reachable folder, depth-first in tree order, with its depth."""
        index = self._children_index()
        flat: List[FlatFolder] = []
        visited: set[int] = set()
        stack: List[Tuple[MediaFolder, int]] = [(f, 0) for f in reversed(index.get(ROOT_PARENT, []))]
        while stack:
            folder, depth = stack.pop()
            if folder.id in visited:
                continue
            visited.add(folder.id)
            entry = FlatFolder.model_validate(folder)
            entry.depth = depth
            flat.append(entry)
            for child in reversed(index.get(folder.id, [])):
                stack.append((child, depth + 1))
        return flat

    def descendants_of(self, folder_id: int) -> List[Tuple[MediaFolder, int]]:
        """All folders below *folder_id* as ``(folder, depth)``; direct children have depth 1."""
        index = self._children_index()
        result: List[Tuple[MediaFolder, int]] = []
        seen = {folder_id}
        stack = [(child, 1) for child in index.get(folder_id, [])]
        while stack:
            folder, depth = stack.pop()
            if folder.id in seen:
                continue
            seen.add(folder.id)
            result.append((folder, depth))
            stack.extend((child, depth + 1) for child in index.get(folder.id, []))
        return result

    def is_descendant(self, ancestor_id: int, candidate_id: int) -> bool:
        """True if *candidate_id* sits somewhere below *ancestor_id*."""
        seen: set[int] = set()
        current = self.get(candidate_id)
        while current is not None and current.parent != ROOT_PARENT:
            if current.parent == ancestor_id:
                return True
            if current.parent in seen:
                break
            seen.add(current.parent)
            current = self.get(current.parent)
        return False

    # ------------------------------------------------------------------
    # Mutation primitives
    # ------------------------------------------------------------------

    def insert(self, name: str, parent: int = ROOT_PARENT) -> MediaFolder:
        """Create a regular folder with count 0."""
        if parent != ROOT_PARENT:
            self.get_or_raise(parent, field="parent")
        clean = self._validate_name(name)
        self._check_sibling_name(parent, clean)

        folder = MediaFolder(
            name=clean,
            slug=self._unique_slug(slugify(clean)),
            parent=parent,
            count=0,
            is_system=False,
        )
        self.db.add(folder)
        self.db.flush()
        self.db.refresh(folder)
        return folder

    def rename(self, folder_id: int, name: str) -> MediaFolder:
        """Change name and regenerate slug. Same name is a no-op."""
        folder = self.get_or_raise(folder_id)
        if folder.is_system:
            raise SystemProtectedError(folder_id, "renamed")
        clean = self._validate_name(name)
        if clean == folder.name:
            return folder
        self._check_sibling_name(folder.parent, clean, exclude_id=folder.id)

        folder.name = clean
        folder.slug = self._unique_slug(slugify(clean), exclude_id=folder.id)
        self.db.flush()
        return folder

    def reparent(self, folder_id: int, new_parent: int) -> MediaFolder:
        """Point *folder_id* at *new_parent*; the subtree follows implicitly."""
        folder = self.get_or_raise(folder_id)
        if folder.is_system:
            raise SystemProtectedError(folder_id, "moved")
        if new_parent == folder_id:
            raise CycleError(folder_id, new_parent)
        if new_parent != ROOT_PARENT:
            self.get_or_raise(new_parent, field="new_parent")
            if self.is_descendant(folder_id, new_parent):
                raise CycleError(folder_id, new_parent)
        if new_parent == folder.parent:
            return folder
        self._check_sibling_name(new_parent, folder.name, exclude_id=folder.id)

        folder.parent = new_parent
        self.db.flush()
        return folder

    def remove(self, folder_id: int) -> None:
        """Delete a leaf folder."""
        folder = self.get_or_raise(folder_id)
        if folder.is_system:
            raise SystemProtectedError(folder_id, "deleted")
        has_children = (
            self.db.query(MediaFolder.id).filter(MediaFolder.parent == folder_id).first() is not None
        )
        if has_children:
            raise ValidationError(
                "Folder still has subfolders.",
                field="folder_id",
                invariant="has-children",
                details={"folder_id": folder_id},
            )
        self.db.delete(folder)
        self.db.flush()

    def set_count(self, folder_id: int, count: int) -> MediaFolder:
        folder = self.get_or_raise(folder_id)
        if count < 0:
            raise ValidationError("Folder count cannot be negative.", field="count")
        folder.count = count
        self.db.flush()
        return folder

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate_name(self, name: Optional[str]) -> str:
        clean = clean_name(name)
        if not clean:
            raise ValidationError("Folder name cannot be empty.", field="name", invariant="empty-name")
        if len(clean) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Folder name cannot exceed {MAX_NAME_LENGTH} characters.", field="name"
            )
        return clean

    def _check_sibling_name(self, parent: int, name: str, exclude_id: Optional[int] = None) -> None:
        folded = name.casefold()
        for sibling in self.db.query(MediaFolder).filter(MediaFolder.parent == parent).all():
            if sibling.id != exclude_id and sibling.name.casefold() == folded:
                raise ValidationError(
                    "A folder with this name already exists.",
                    field="name",
                    invariant="duplicate-name",
                    details={"parent": parent, "existing_id": sibling.id},
                )

    def _unique_slug(self, base: str, exclude_id: Optional[int] = None) -> str:
        """*base*, or *base*-2, *base*-3, ... whichever is free across the whole tree."""
        taken = {
            slug
            for (slug,) in self.db.query(MediaFolder.slug)
            .filter(MediaFolder.slug.like(f"{base}%"))
            .filter(MediaFolder.id != (exclude_id if exclude_id is not None else -1))
            .all()
        }
        if base not in taken:
            return base
        suffix = 2
        while f"{base}-{suffix}" in taken:
            suffix += 1
        return f"{base}-{suffix}"
