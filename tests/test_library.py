"""MediaLibrary wiring: selection filters, dropdown sync, uploads."""

import asyncio

from medianest.client.library import MediaLibrary
from medianest.models.folder import ALL_FOLDERS

from tests.test_tree_controller import FakeTransport, _folder, _snapshot


class LibraryTransport(FakeTransport):
    def __init__(self):
        super().__init__()
        self.listings = []
        self.uploads = []

    async def get_folder_contents(self, folder_id=None, page=1, per_page=None):
        self.listings.append((folder_id, page, per_page))
        return {"items": [], "total": 0, "pages": 0, "page": page, "perPage": per_page or 40}

    async def register_item(self, filename, folder_id=None, **fields):
        self.uploads.append((filename, folder_id, fields))
        return {"id": 77, "filename": filename, "folderId": folder_id}


def _started(**kwargs):
    transport = LibraryTransport()
    library = MediaLibrary(transport, **kwargs)
    asyncio.run(library.start())
    return library, transport


def test_start_loads_tree_and_unfiltered_listing():
    library, transport = _started(per_page=10)
    assert transport.calls == [("getFolders", {})]
    assert transport.listings == [(ALL_FOLDERS, 1, 10)]
    assert library.dropdown[0] == (ALL_FOLDERS, "All Files")
    assert (3, "  2024 (0)") in library.dropdown


def test_dropdown_follows_each_snapshot():
    library, transport = _started()
    transport.responses["createFolder"] = _snapshot(extra_root=[_folder(9, "Icons", count=4)])
    asyncio.run(library.tree.create_folder("Icons"))
    assert library.dropdown[-1] == (9, "Icons (4)")


def test_choosing_from_dropdown_selects_and_refetches():
    library, transport = _started()
    asyncio.run(library.choose_from_dropdown(2))
    assert library.tree.selected_folder == 2
    assert library.current_folder == 2
    assert transport.listings[-1] == (2, 1, None)


def test_assign_away_from_current_folder_refreshes_listing():
    library, transport = _started()

    async def scenario():
        await library.choose_from_dropdown(2)
        before = len(transport.listings)
        await library.assign_to_folder([5], 3)
        return before

    before = asyncio.run(scenario())
    assert len(transport.listings) == before + 1


def test_assign_while_viewing_all_files_keeps_listing():
    library, transport = _started()
    before = len(transport.listings)
    asyncio.run(library.assign_to_folder([5], 3))
    assert len(transport.listings) == before


def test_upload_files_into_current_folder():
    library, transport = _started()

    async def scenario():
        await library.choose_from_dropdown(3)
        return await library.upload("logo.png", title="Logo")

    item = asyncio.run(scenario())
    assert item["folderId"] == 3
    assert transport.uploads == [("logo.png", 3, {"title": "Logo"})]
    # Tree counts and the listing are refreshed after the upload.
    assert transport.calls[-1] == ("getFolders", {})
    assert transport.listings[-1] == (3, 1, None)


def test_upload_from_all_files_goes_to_system_folder():
    library, transport = _started()
    asyncio.run(library.upload("a.jpg"))
    assert transport.uploads == [("a.jpg", None, {})]
