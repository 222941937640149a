"""Client stack against the real application over an in-process ASGI transport."""

import asyncio

import httpx
import pytest

from medianest.client import MediaLibrary, RpcError, RpcTransport, TextTreeView, TransportError
from medianest.models.folder import ALL_FOLDERS
from medianest.services.folder_service import FolderService


@pytest.fixture()
def transport(app):
    return RpcTransport(
        base_url="http://testserver",
        transport=httpx.ASGITransport(app=app),
        retry_base_delay=0,
    )


def _counts(library):
    return {f.name: f.count for f in library.tree.snapshot.flat}


def test_library_workflow(transport):
    view = TextTreeView()
    library = MediaLibrary(transport, view=view)

    async def scenario():
        async with transport:
            await library.start()
            uploaded = [(await library.upload(f"photo-{i}.jpg"))["id"] for i in range(3)]
            assert _counts(library) == {"Uncategorized": 3}
            assert library.tree.snapshot.total_count == 3

            await library.tree.create_folder("Logos")
            logos = next(f for f in library.tree.snapshot.flat if f.name == "Logos")
            await library.choose_from_dropdown(logos.id)
            assert library.listing.total == 0

            # Created under the selected folder.
            await library.tree.create_folder("2024")
            year = next(f for f in library.tree.snapshot.flat if f.name == "2024")
            assert year.parent == logos.id and year.depth == 1

            await library.tree.drop_items(uploaded[:2], year.id)
            assert _counts(library) == {"Uncategorized": 1, "Logos": 0, "2024": 2}

            await library.choose_from_dropdown(year.id)
            assert sorted(library.item_ids) == sorted(uploaded[:2])

            await library.tree.delete_folder(logos.id)
            await library.tree.drain()
            assert library.current_folder == ALL_FOLDERS
            assert library.listing.total == 3

    asyncio.run(scenario())
    assert library.tree.selected_folder == ALL_FOLDERS
    assert _counts(library) == {"Uncategorized": 3}
    assert view.errors == []
    assert view.bound_to is library.tree
    assert (ALL_FOLDERS, "All Files") == library.dropdown[0]


def test_failure_is_reported_and_snapshot_kept(transport):
    view = TextTreeView()
    library = MediaLibrary(transport, view=view)

    async def scenario():
        async with transport:
            await library.start()
            await library.tree.create_folder("Logos")
            before = library.tree.snapshot
            await library.tree.create_folder("logos")
            return before

    before = asyncio.run(scenario())
    assert library.tree.snapshot is before
    assert len(view.errors) == 1


def test_rpc_error_carries_invariant(transport):
    async def scenario():
        async with transport:
            parent = await transport.create_folder("A")
            child = await transport.create_folder("B", parent=parent["folder"]["id"])
            with pytest.raises(RpcError) as exc_info:
                await transport.move_folder(parent["folder"]["id"], child["folder"]["id"])
            return exc_info.value

    error = asyncio.run(scenario())
    assert error.code == "CYCLE"
    assert error.invariant == "cycle"
    assert error.status_code == 400


def test_server_crash_arrives_as_rpc_error(transport, monkeypatch):
    def crash(self):
        raise RuntimeError("boom")

    monkeypatch.setattr(FolderService, "snapshot", crash)

    async def scenario():
        async with transport:
            with pytest.raises(RpcError) as exc_info:
                await transport.get_folders()
            return exc_info.value

    error = asyncio.run(scenario())
    assert error.code == "INTERNAL_ERROR"
    assert error.status_code == 500


def test_unreachable_server_raises_transport_error():
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    client = RpcTransport(
        base_url="http://testserver",
        transport=httpx.MockTransport(refuse),
        retry_base_delay=0,
    )

    async def scenario():
        async with client:
            await client.get_folders()

    with pytest.raises(TransportError):
        asyncio.run(scenario())
