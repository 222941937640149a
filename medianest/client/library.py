"""Media library integration: the consumer of folder selection.

``MediaLibrary`` owns the active folder and the current listing page. The
tree controller notifies it on selection; it refetches the listing, keeps
the filter dropdown in step with every snapshot, and files uploads under
the folder being viewed.
"""

import logging
from typing import Any, List, Optional, Tuple

from ..models.folder import ALL_FOLDERS
from ..schemas.folder import FolderSnapshot
from ..schemas.item import FolderContentsResponse
from .rendering import TextTreeView, dropdown_options
from .transport import RpcTransport
from .tree_controller import FolderTreeController, TreeView

logger = logging.getLogger(__name__)


class MediaLibrary:
    def __init__(
        self,
        transport: RpcTransport,
        view: Optional[TreeView] = None,
        per_page: Optional[int] = None,
    ) -> None:
        self.transport = transport
        self.per_page = per_page
        self.current_folder = ALL_FOLDERS
        self.listing = FolderContentsResponse()
        self.dropdown: List[Tuple[int, str]] = dropdown_options([])
        self.tree = FolderTreeController(
            transport,
            view or TextTreeView(),
            on_folder_select=self.filter_by_folder,
            on_snapshot=self._on_snapshot,
            on_assign=self._after_assign,
        )

    async def start(self) -> None:
        """Load the tree and the unfiltered listing."""
        await self.tree.load()
        await self.refresh_listing()

    async def filter_by_folder(self, folder_id: int, page: int = 1) -> None:
        self.current_folder = folder_id
        await self.refresh_listing(page)

    async def choose_from_dropdown(self, folder_id: int) -> None:
        """Dropdown change: select the folder in the tree, which refetches the listing."""
        self.tree.select_folder(folder_id)
        await self.tree.drain()

    async def refresh_listing(self, page: int = 1) -> FolderContentsResponse:
        data = await self.transport.get_folder_contents(self.current_folder, page=page, per_page=self.per_page)
        self.listing = FolderContentsResponse.model_validate(data)
        return self.listing

    @property
    def item_ids(self) -> List[int]:
        return [item.id for item in self.listing.items]

    async def assign_to_folder(self, item_ids: List[int], folder_id: int) -> Optional[dict]:
        return await self.tree.assign_items(item_ids, folder_id)

    async def upload(self, filename: str, **fields: Any) -> dict:
        """Register an upload in the folder being viewed (system folder when none)."""
        folder_id = self.current_folder if self.current_folder > 0 else None
        item = await self.transport.register_item(filename, folder_id=folder_id, **fields)
        logger.debug("Uploaded item filed", extra={"item_id": item.get("id"), "folder_id": folder_id})
        await self.tree.refresh()
        await self.refresh_listing()
        return item

    def _on_snapshot(self, snapshot: FolderSnapshot) -> None:
        self.dropdown = dropdown_options(snapshot.flat)

    async def _after_assign(self, folder_id: int) -> None:
        # Items left the folder being viewed.
        if self.current_folder not in (folder_id, ALL_FOLDERS):
            await self.refresh_listing()
