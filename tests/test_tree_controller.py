"""Tests for FolderTreeController against a scripted transport."""

import asyncio

from medianest.client.rendering import TextTreeView
from medianest.client.transport import RpcError, TransportError
from medianest.client.tree_controller import ControllerState, FolderTreeController
from medianest.models.folder import ALL_FOLDERS, ROOT_PARENT


def _folder(id, name, parent=0, count=0, is_system=False, children=None):
    return {
        "id": id, "name": name, "slug": name.lower(), "parent": parent,
        "count": count, "isSystem": is_system, "children": children or [],
    }


def _snapshot(extra_root=None, total=3):
    """System folder (1), Logos (2) with child 2024 (3), plus optional root folders."""
    tree = [
        _folder(1, "Uncategorized", count=1, is_system=True),
        _folder(2, "Logos", count=2, children=[_folder(3, "2024", parent=2)]),
    ] + (extra_root or [])
    flat = []

    def walk(nodes, depth):
        for node in nodes:
            entry = {k: v for k, v in node.items() if k != "children"}
            entry["depth"] = depth
            flat.append(entry)
            walk(node["children"], depth + 1)

    walk(tree, 0)
    return {"tree": tree, "flat": flat, "totalCount": total}


class FakeTransport:
    def __init__(self):
        self.calls = []
        self.responses = {}
        self.errors = {}
        self.gate = None

    async def call(self, action, payload=None):
        self.calls.append((action, payload))
        if self.gate is not None:
            await self.gate.wait()
        if action in self.errors:
            raise self.errors[action]
        return self.responses.get(action, _snapshot())


class RecordingView(TextTreeView):
    def __init__(self):
        super().__init__()
        self.events = []

    def render(self, rows):
        super().render(rows)
        self.events.append(("render", [r.name for r in rows]))

    def bind(self, controller):
        super().bind(controller)
        self.events.append(("bind", None))


def _controller(**kwargs):
    transport = FakeTransport()
    view = RecordingView()
    return FolderTreeController(transport, view, **kwargs), transport, view


def _loaded(**kwargs):
    controller, transport, view = _controller(**kwargs)
    asyncio.run(controller.load())
    view.events.clear()
    transport.calls.clear()
    return controller, transport, view


class TestSnapshotReplacement:

    def test_load_renders_then_binds(self):
        controller, transport, view = _controller()
        assert asyncio.run(controller.load())
        assert transport.calls == [("getFolders", {})]
        assert [e[0] for e in view.events] == ["render", "bind"]
        assert view.bound_to is controller
        assert controller.state == ControllerState.IDLE

    def test_success_replaces_snapshot_wholesale(self):
        controller, transport, view = _loaded()
        transport.responses["createFolder"] = _snapshot(extra_root=[_folder(9, "Icons")], total=5)

        asyncio.run(controller.create_folder("Icons"))

        assert transport.calls == [("createFolder", {"name": "Icons", "parent": ROOT_PARENT})]
        assert controller.snapshot.total_count == 5
        assert controller.find_folder(9).name == "Icons"
        # Render sees the new snapshot, and binding comes after it.
        assert view.events[0] == ("render", ["All Files", "Uncategorized", "Logos", "2024", "Icons"])
        assert view.events[1] == ("bind", None)

    def test_failure_keeps_snapshot_and_notifies(self):
        controller, transport, view = _loaded()
        before = controller.snapshot
        transport.errors["moveFolder"] = RpcError("CYCLE", "Cannot move folder into its own subfolder.")

        result = asyncio.run(controller.move_folder(2, 3))

        assert result is None
        assert controller.snapshot is before
        assert view.errors == ["Cannot move folder into its own subfolder."]
        assert view.events == []

    def test_transport_failure_uses_generic_message(self):
        controller, transport, view = _loaded()
        transport.errors["renameFolder"] = TransportError("connection reset")
        asyncio.run(controller.rename_folder(2, "Brand"))
        assert view.errors == ["An error occurred. Please try again."]

    def test_malformed_response_is_a_failure(self):
        controller, transport, view = _loaded()
        before = controller.snapshot
        transport.responses["createFolder"] = {"tree": "nonsense"}
        asyncio.run(controller.create_folder("Icons"))
        assert controller.snapshot is before
        assert len(view.errors) == 1

    def test_state_is_pending_while_in_flight(self):
        controller, transport, _ = _loaded()

        async def scenario():
            transport.gate = asyncio.Event()
            task = asyncio.create_task(controller.create_folder("A"))
            await asyncio.sleep(0)
            pending = controller.state
            transport.gate.set()
            await task
            return pending

        assert asyncio.run(scenario()) == ControllerState.PENDING
        assert controller.state == ControllerState.IDLE

    def test_last_response_wins(self):
        controller, transport, _ = _loaded()
        first = _snapshot(extra_root=[_folder(10, "First")])
        second = _snapshot(extra_root=[_folder(11, "Second")])

        async def scenario():
            slow = asyncio.Event()

            async def call(action, payload=None):
                if payload["name"] == "First":
                    await slow.wait()
                    return first
                slow.set()
                return second

            transport.call = call
            await asyncio.gather(controller.create_folder("First"), controller.create_folder("Second"))

        asyncio.run(scenario())
        assert controller.find_folder(10) is not None
        assert controller.find_folder(11) is None


class TestSelection:

    def test_select_notifies_consumer(self):
        seen = []

        async def on_select(folder_id):
            seen.append(folder_id)

        controller, _, view = _loaded(on_folder_select=on_select)

        async def scenario():
            controller.select_folder(2)
            await controller.drain()

        asyncio.run(scenario())
        assert controller.selected_folder == 2
        assert seen == [2]
        assert "*" in next(line for line in view.lines if "Logos" in line)

    def test_failed_notification_keeps_selection(self):
        async def on_select(folder_id):
            raise TransportError("listing failed")

        controller, _, view = _loaded(on_folder_select=on_select)

        async def scenario():
            controller.select_folder(2)
            await controller.drain()

        asyncio.run(scenario())
        assert controller.selected_folder == 2
        assert view.errors == []

    def test_create_defaults_to_selected_parent(self):
        controller, transport, _ = _loaded(selected_folder=2)
        asyncio.run(controller.create_folder("Sub"))
        assert transport.calls == [("createFolder", {"name": "Sub", "parent": 2})]

    def test_deleting_selected_folder_falls_back_to_all(self):
        controller, transport, _ = _loaded()

        async def scenario():
            controller.select_folder(3)
            transport.responses["deleteFolder"] = dict(_snapshot(), deletedIds=[2, 3])
            await controller.delete_folder(2)

        asyncio.run(scenario())
        assert controller.selected_folder == ALL_FOLDERS

    def test_toggle_expands_without_request(self):
        controller, transport, view = _loaded()
        controller.toggle_folder(2)
        assert 2 in controller.expanded_folders
        assert any("2024" in line for line in view.lines)
        controller.toggle_folder(2)
        assert not any("2024" in line for line in view.lines)
        assert transport.calls == []


class TestDragAndDrop:

    def test_items_onto_folder_assigns(self):
        assigned = []

        async def on_assign(folder_id):
            assigned.append(folder_id)

        controller, transport, _ = _loaded(on_assign=on_assign)
        asyncio.run(controller.drop_items([5, 6], 3))
        assert transport.calls == [("assignMedia", {"itemIds": [5, 6], "folderId": 3})]
        assert assigned == [3]

    def test_items_onto_all_files_ignored(self):
        controller, transport, _ = _loaded()
        assert asyncio.run(controller.drop_items([5], ALL_FOLDERS)) is None
        assert transport.calls == []

    def test_folder_onto_folder_moves(self):
        controller, transport, _ = _loaded()
        asyncio.run(controller.drop_folder(3, ROOT_PARENT))
        assert transport.calls == [("moveFolder", {"folderId": 3, "newParent": ROOT_PARENT})]

    def test_folder_onto_itself_ignored(self):
        controller, transport, _ = _loaded()
        assert asyncio.run(controller.drop_folder(2, 2)) is None
        assert transport.calls == []

    def test_system_folder_is_not_a_drag_source(self):
        controller, transport, _ = _loaded()
        assert controller.begin_drag(1) is False
        assert controller.begin_drag(ALL_FOLDERS) is False
        assert asyncio.run(controller.drop_folder(1, 2)) is None
        assert transport.calls == []

    def test_drag_state_only_changes_css(self):
        controller, transport, _ = _loaded()
        before = controller.snapshot
        controller.begin_drag(3)
        controller.hover(2)
        rows = {r.id: r for r in controller.rows()}
        assert "is-dragging" in rows[3].css_classes
        assert "drop-hover" in rows[2].css_classes
        assert controller.snapshot is before
        controller.end_drag()
        assert all("is-dragging" not in r.css_classes for r in controller.rows())
        assert transport.calls == []


class TestContextMenu:

    def test_menu_only_for_regular_folders(self):
        controller, _, _ = _loaded()
        assert controller.context_menu(2) == ("rename", "delete", "new_subfolder")
        assert controller.context_menu(1) == ()
        assert controller.context_menu(ALL_FOLDERS) == ()

    def test_new_subfolder_action(self):
        controller, transport, _ = _loaded()
        asyncio.run(controller.run_menu_action(2, "new_subfolder", name="Icons"))
        assert transport.calls == [("createFolder", {"name": "Icons", "parent": 2})]

    def test_rename_to_current_name_sends_nothing(self):
        controller, transport, _ = _loaded()
        assert asyncio.run(controller.run_menu_action(2, "rename", name="Logos")) is None
        assert transport.calls == []
