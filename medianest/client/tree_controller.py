"""Client-side folder tree controller.

Keeps a rendered tree consistent with server state. The rules:

* The snapshot is only ever replaced wholesale by the one in a successful
  response; it is never patched locally. Replace, then render, then bind.
* A failed request leaves the snapshot untouched and raises a blocking
  notification through the view.
* Selection and expansion are UI state, independent of the snapshot.
  Selecting is optimistic; the filter consumer is notified in the
  background and its failures do not roll the selection back.
* Requests are neither coalesced nor cancelled. Whichever response arrives
  last wins. A delete issued before a slow create of the same folder has
  returned will fail with not-found.
"""

import asyncio
import enum
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol, Sequence

import pydantic

from ..models.folder import ALL_FOLDERS, ROOT_PARENT
from ..schemas.folder import FlatFolder, FolderSnapshot
from .rendering import MENU_ACTIONS, TreeRow, build_rows
from .transport import RpcError, TransportError

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An error occurred. Please try again."


class TreeView(Protocol):
    def render(self, rows: Sequence[TreeRow]) -> None: ...

    def bind(self, controller: "FolderTreeController") -> None: ...

    def notify_error(self, message: str) -> None: ...


class ActionTransport(Protocol):
    async def call(self, action: str, payload: Optional[dict] = None) -> Any: ...


class ControllerState(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"


class FolderTreeController:
    def __init__(
        self,
        transport: ActionTransport,
        view: TreeView,
        on_folder_select: Optional[Callable[[int], Awaitable[None]]] = None,
        on_snapshot: Optional[Callable[[FolderSnapshot], None]] = None,
        on_assign: Optional[Callable[[int], Awaitable[None]]] = None,
        selected_folder: int = ALL_FOLDERS,
    ) -> None:
        self.transport = transport
        self.view = view
        self.on_folder_select = on_folder_select
        self.on_snapshot = on_snapshot
        self.on_assign = on_assign

        self.snapshot = FolderSnapshot()
        self.selected_folder = selected_folder
        self.expanded_folders: set[int] = set()
        self.dragging: Optional[int] = None
        self.drop_hover: Optional[int] = None

        self._in_flight = 0
        self._background: set[asyncio.Task] = set()

    @property
    def state(self) -> ControllerState:
        return ControllerState.PENDING if self._in_flight else ControllerState.IDLE

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_folder(self, folder_id: int) -> Optional[FlatFolder]:
        for folder in self.snapshot.flat:
            if folder.id == folder_id:
                return folder
        return None

    def rows(self) -> list[TreeRow]:
        return build_rows(
            self.snapshot.tree,
            self.snapshot.total_count,
            selected=self.selected_folder,
            expanded=self.expanded_folders,
            dragging=self.dragging,
            drop_hover=self.drop_hover,
        )

    def context_menu(self, folder_id: int) -> tuple[str, ...]:
        """Menu entries for a folder; empty for the system folder and "All Files"."""
        folder = self.find_folder(folder_id)
        if folder is None or folder.is_system:
            return ()
        return MENU_ACTIONS

    def can_drag(self, folder_id: int) -> bool:
        folder = self.find_folder(folder_id)
        return folder is not None and not folder.is_system

    # ------------------------------------------------------------------
    # UI state
    # ------------------------------------------------------------------

    def select_folder(self, folder_id: int) -> None:
        """Highlight *folder_id* now and tell the filter consumer in the background."""
        self.selected_folder = folder_id
        self._redraw()
        if self.on_folder_select is not None:
            task = asyncio.get_running_loop().create_task(self._notify_select(folder_id))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    async def _notify_select(self, folder_id: int) -> None:
        try:
            await self.on_folder_select(folder_id)
        except (RpcError, TransportError) as e:
            logger.warning("Folder selection refresh failed: %s", e, extra={"folder_id": folder_id})

    async def drain(self) -> None:
        """Wait for background selection notifications."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def toggle_folder(self, folder_id: int) -> None:
        if folder_id in self.expanded_folders:
            self.expanded_folders.discard(folder_id)
        else:
            self.expanded_folders.add(folder_id)
        self._redraw()

    def begin_drag(self, folder_id: int) -> bool:
        if not self.can_drag(folder_id):
            return False
        self.dragging = folder_id
        self._redraw()
        return True

    def hover(self, folder_id: Optional[int]) -> None:
        self.drop_hover = folder_id
        self._redraw()

    def end_drag(self) -> None:
        self.dragging = None
        self.drop_hover = None
        self._redraw()

    # ------------------------------------------------------------------
    # Server operations
    # ------------------------------------------------------------------

    async def load(self) -> bool:
        """Fetch the initial snapshot."""
        return await self._request("getFolders", {}) is not None

    async def refresh(self) -> bool:
        return await self.load()

    async def create_folder(self, name: str, parent: Optional[int] = None) -> Optional[dict]:
        """Create under *parent*, or under the selected folder when it is a real one."""
        if parent is None:
            parent = self.selected_folder if self.selected_folder > 0 else ROOT_PARENT
        return await self._request("createFolder", {"name": name, "parent": parent})

    async def rename_folder(self, folder_id: int, name: str) -> Optional[dict]:
        folder = self.find_folder(folder_id)
        if folder is not None and folder.name == name.strip():
            return None
        return await self._request("renameFolder", {"folderId": folder_id, "name": name})

    async def delete_folder(self, folder_id: int) -> Optional[dict]:
        data = await self._request("deleteFolder", {"folderId": folder_id})
        if data is not None and self.selected_folder in data.get("deletedIds", [folder_id]):
            self.select_folder(ALL_FOLDERS)
        return data

    async def move_folder(self, folder_id: int, new_parent: int) -> Optional[dict]:
        return await self._request("moveFolder", {"folderId": folder_id, "newParent": new_parent})

    async def assign_items(self, item_ids: Iterable[int], folder_id: int) -> Optional[dict]:
        data = await self._request("assignMedia", {"itemIds": list(item_ids), "folderId": folder_id})
        if data is not None and self.on_assign is not None:
            await self.on_assign(folder_id)
        return data

    async def run_menu_action(self, folder_id: int, action: str, name: str = "") -> Optional[dict]:
        if action not in self.context_menu(folder_id):
            return None
        if action == "rename":
            return await self.rename_folder(folder_id, name)
        if action == "delete":
            return await self.delete_folder(folder_id)
        return await self.create_folder(name, parent=folder_id)

    # ------------------------------------------------------------------
    # Drag and drop
    # ------------------------------------------------------------------

    async def drop_items(self, item_ids: Iterable[int], target_id: int) -> Optional[dict]:
        """Items dropped on a folder row. "All Files" is not a drop target."""
        self.end_drag()
        if target_id == ALL_FOLDERS or self.find_folder(target_id) is None:
            return None
        return await self.assign_items(item_ids, target_id)

    async def drop_folder(self, source_id: int, target_id: int) -> Optional[dict]:
        """Folder dropped on a folder row, or on the root zone (``ROOT_PARENT``)."""
        self.end_drag()
        if not self.can_drag(source_id) or source_id == target_id or target_id == ALL_FOLDERS:
            return None
        return await self.move_folder(source_id, target_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _request(self, action: str, payload: dict) -> Optional[dict]:
        """Send one action. On success replace the snapshot; on failure notify."""
        self._in_flight += 1
        try:
            data = await self.transport.call(action, payload)
            snapshot = FolderSnapshot.model_validate(data)
        except RpcError as e:
            self._fail(action, e.message or GENERIC_ERROR)
            return None
        except TransportError as e:
            self._fail(action, GENERIC_ERROR, cause=e)
            return None
        except pydantic.ValidationError as e:
            self._fail(action, GENERIC_ERROR, cause=e)
            return None
        finally:
            self._in_flight -= 1

        self._replace_snapshot(snapshot)
        return data

    def _replace_snapshot(self, snapshot: FolderSnapshot) -> None:
        self.snapshot = snapshot
        self._redraw()
        if self.on_snapshot is not None:
            self.on_snapshot(snapshot)

    def _redraw(self) -> None:
        self.view.render(self.rows())
        self.view.bind(self)

    def _fail(self, action: str, message: str, cause: Optional[Exception] = None) -> None:
        logger.error("Folder action %s failed: %s", action, cause or message)
        self.view.notify_error(message)
