"""Authentication module: FastAPI dependencies resolving the caller.

Public interface:
    ``require_auth``           returns AuthContext or raises 401.
    ``optional_auth``          always returns AuthContext, never raises. Returns
                               a viewer context when no valid token is present.
    ``require_folder_manager`` returns AuthContext, raises 403 unless the
                               caller may manage folders.

When ``settings.auth_enabled`` is False all dependencies return an anonymous
admin context so the development workflow is unbroken.

Tokens are self-contained: the role claim decides what the caller may do.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..context import AppContext, get_context
from ..exceptions import AuthenticationError, PermissionDeniedError
from ..services.permission_service import can_manage_folders
from .token_factory import decode_token

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Resolved caller identity and role."""

    user_id: str
    role: str


# Dev mode: everyone is an admin.
_ANONYMOUS = AuthContext(user_id="anonymous", role="admin")

# Auth enabled but no valid token: read-only.
_UNAUTHENTICATED = AuthContext(user_id="anonymous", role="viewer")


def resolve_auth(ctx: AppContext, token: Optional[str]) -> Optional[AuthContext]:
    """Decode *token* against the context's settings. None when missing or invalid."""
    if not token:
        return None
    settings = ctx.settings
    payload = decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
    if payload is None:
        return None
    return AuthContext(user_id=payload.sub, role=payload.role)


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    ctx: AppContext = Depends(get_context),
) -> AuthContext:
    """Require a valid JWT. Returns the anonymous admin when auth is disabled."""
    if not ctx.settings.auth_enabled:
        return _ANONYMOUS

    if credentials is None:
        raise AuthenticationError("Missing authentication token")

    auth = resolve_auth(ctx, credentials.credentials)
    if auth is None:
        raise AuthenticationError("Invalid or expired token")
    return auth


def optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    ctx: AppContext = Depends(get_context),
) -> AuthContext:
    """Validate a token if present. Never raises (unlike require_auth)."""
    if not ctx.settings.auth_enabled:
        return _ANONYMOUS
    if credentials is None:
        return _UNAUTHENTICATED
    return resolve_auth(ctx, credentials.credentials) or _UNAUTHENTICATED


def require_folder_manager(
    auth: AuthContext = Depends(require_auth),
) -> AuthContext:
    """Require the folder management capability. Raises 403 otherwise."""
    ensure_folder_manager(auth)
    return auth


def ensure_folder_manager(auth: AuthContext) -> None:
    if not can_manage_folders(auth):
        logger.warning("Folder management denied", extra={"user_id": auth.user_id, "role": auth.role})
        raise PermissionDeniedError()
