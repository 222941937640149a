"""Turn a folder snapshot plus UI state into displayable rows.

Pure functions over ``FolderNode`` / ``FlatFolder``; the only stateful piece
is ``TextTreeView``, a plain-text surface used by the command line and tests.
"""

from dataclasses import dataclass
from typing import AbstractSet, List, Optional, Sequence, Tuple

from ..models.folder import ALL_FOLDERS
from ..schemas.folder import FlatFolder, FolderNode

ALL_FILES_LABEL = "All Files"
INDENT_PX = 20
MENU_ACTIONS = ("rename", "delete", "new_subfolder")


@dataclass(frozen=True)
class TreeRow:
    id: int
    name: str
    count: int
    depth: int
    is_system: bool = False
    is_all_files: bool = False
    has_children: bool = False
    expanded: bool = False
    visible: bool = True
    selected: bool = False
    dragging: bool = False
    drop_hover: bool = False

    @property
    def draggable(self) -> bool:
        return not (self.is_system or self.is_all_files)

    @property
    def accepts_drops(self) -> bool:
        """Items and folders may be dropped on every row except "All Files"."""
        return not self.is_all_files

    @property
    def actions(self) -> Tuple[str, ...]:
        return () if (self.is_system or self.is_all_files) else MENU_ACTIONS

    @property
    def indent_px(self) -> int:
        return self.depth * INDENT_PX + 10

    @property
    def css_classes(self) -> Tuple[str, ...]:
        flags = (
            ("selected", self.selected),
            ("is-system", self.is_system),
            ("is-all-files", self.is_all_files),
            ("has-children", self.has_children),
            ("is-expanded", self.expanded),
            ("is-dragging", self.dragging),
            ("drop-hover", self.drop_hover),
        )
        return ("media-nest-folder-item",) + tuple(name for name, on in flags if on)


def build_rows(
    tree: Sequence[FolderNode],
    total_count: int,
    selected: int = ALL_FOLDERS,
    expanded: AbstractSet[int] = frozenset(),
    dragging: Optional[int] = None,
    drop_hover: Optional[int] = None,
) -> List[TreeRow]:
    """Rows in display order, "All Files" first.

    Children of a collapsed folder are present but not visible.
    """
    rows = [
        TreeRow(
            id=ALL_FOLDERS,
            name=ALL_FILES_LABEL,
            count=total_count,
            depth=0,
            is_system=True,
            is_all_files=True,
            selected=selected == ALL_FOLDERS,
            drop_hover=drop_hover == ALL_FOLDERS,
        )
    ]

    stack: List[Tuple[FolderNode, int, bool]] = [(node, 0, True) for node in reversed(tree)]
    while stack:
        node, depth, visible = stack.pop()
        is_expanded = node.id in expanded
        rows.append(
            TreeRow(
                id=node.id,
                name=node.name,
                count=node.count,
                depth=depth,
                is_system=node.is_system,
                has_children=bool(node.children),
                expanded=is_expanded,
                visible=visible,
                selected=node.id == selected,
                dragging=node.id == dragging,
                drop_hover=node.id == drop_hover,
            )
        )
        for child in reversed(node.children):
            stack.append((child, depth + 1, visible and is_expanded))
    return rows


def dropdown_options(flat: Sequence[FlatFolder], indent: str = "  ") -> List[Tuple[int, str]]:
    """``(value, label)`` pairs for the folder filter select, "All Files" first."""
    options = [(ALL_FOLDERS, ALL_FILES_LABEL)]
    for folder in flat:
        options.append((folder.id, f"{indent * folder.depth}{folder.name} ({folder.count})"))
    return options


class TextTreeView:
    """Renders rows as indented text.

    ``render`` replaces the whole surface, so handlers bound to the previous
    surface are gone until ``bind`` runs again.
    """

    def __init__(self) -> None:
        self.lines: List[str] = []
        self.rows: List[TreeRow] = []
        self.bound_to = None
        self.render_count = 0
        self.errors: List[str] = []

    def render(self, rows: Sequence[TreeRow]) -> None:
        self.rows = list(rows)
        self.bound_to = None
        self.render_count += 1
        self.lines = [self._format(row) for row in self.rows if row.visible]

    def bind(self, controller) -> None:
        self.bound_to = controller

    def notify_error(self, message: str) -> None:
        self.errors.append(message)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @staticmethod
    def _format(row: TreeRow) -> str:
        if row.has_children:
            marker = "v" if row.expanded else ">"
        else:
            marker = " "
        cursor = "*" if row.selected else " "
        return f"{cursor}{'  ' * row.depth}{marker} {row.name} ({row.count})"
