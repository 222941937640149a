"""Tests for row building, dropdown options and the text view."""

from medianest.client.rendering import TextTreeView, build_rows, dropdown_options
from medianest.models.folder import ALL_FOLDERS
from medianest.schemas.folder import FlatFolder, FolderNode


def _tree():
    return [
        FolderNode(id=1, name="Uncategorized", slug="uncategorized", count=2, is_system=True),
        FolderNode(
            id=2, name="Logos", slug="logos", count=1,
            children=[FolderNode(id=3, name="2024", slug="2024", parent=2, count=4)],
        ),
    ]


class TestBuildRows:

    def test_all_files_row_first(self):
        rows = build_rows(_tree(), total_count=7)
        first = rows[0]
        assert first.id == ALL_FOLDERS
        assert first.name == "All Files"
        assert first.count == 7
        assert first.selected
        assert not first.draggable
        assert not first.accepts_drops
        assert first.actions == ()

    def test_collapsed_children_hidden(self):
        rows = {r.id: r for r in build_rows(_tree(), 7)}
        assert rows[2].has_children and not rows[2].expanded
        assert rows[3].visible is False
        assert rows[3].depth == 1

    def test_expanded_children_visible(self):
        rows = {r.id: r for r in build_rows(_tree(), 7, expanded={2})}
        assert rows[3].visible is True
        assert "is-expanded" in rows[2].css_classes

    def test_system_row_is_not_draggable(self):
        rows = {r.id: r for r in build_rows(_tree(), 7)}
        assert not rows[1].draggable
        assert rows[1].accepts_drops
        assert rows[1].actions == ()
        assert rows[2].actions == ("rename", "delete", "new_subfolder")

    def test_drag_state_is_css_only(self):
        rows = {r.id: r for r in build_rows(_tree(), 7, selected=2, dragging=3, drop_hover=2)}
        assert "is-dragging" in rows[3].css_classes
        assert "drop-hover" in rows[2].css_classes
        assert "selected" in rows[2].css_classes
        assert rows[2].indent_px == 10
        assert rows[3].indent_px == 30


class TestDropdown:

    def test_options_indent_by_depth(self):
        flat = [
            FlatFolder(id=2, name="Logos", slug="logos", count=1, depth=0),
            FlatFolder(id=3, name="2024", slug="2024", parent=2, count=4, depth=1),
        ]
        assert dropdown_options(flat) == [
            (ALL_FOLDERS, "All Files"),
            (2, "Logos (1)"),
            (3, "  2024 (4)"),
        ]


class TestTextTreeView:

    def test_render_drops_binding(self):
        view = TextTreeView()
        view.bind("controller")
        view.render(build_rows(_tree(), 7, expanded={2}, selected=3))
        assert view.bound_to is None
        assert view.text.splitlines() == [
            "   All Files (7)",
            "   Uncategorized (2)",
            " v Logos (1)",
            "*    2024 (4)",
        ]
