"""Permission checking: the one place folder management rights are decided.

There is a single blanket capability, "manage folders", held by the admin
and editor roles. Viewers may browse the tree and list items but every
mutating action is refused. Replace this module to plug in a different
authorization model; everything else calls ``can_manage_folders``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.auth import AuthContext

# Role -> allowed actions.
_ROLE_ACTIONS: dict[str, set[str]] = {
    "admin": {"read", "manage_folders"},
    "editor": {"read", "manage_folders"},
    "viewer": {"read"},
}


def check_permission(auth: AuthContext, action: str) -> bool:
    """True if the caller's role permits *action* (``"read"`` or ``"manage_folders"``)."""
    return action in _ROLE_ACTIONS.get(auth.role, set())


def can_manage_folders(auth: AuthContext) -> bool:
    return check_permission(auth, "manage_folders")
