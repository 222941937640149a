"""Action transport: ``POST /api/rpc`` with ``{"action": ..., "payload": {...}}``.

Every response is an envelope. Success carries ``data``; failure carries
``error`` (``{"error", "message", "details"}``) with the exception's HTTP
status. Mutating actions require the folder management capability; reads
accept an optional token.

Actions:
    getFolders         snapshot of the tree
    createFolder       name, parent
    renameFolder       folderId, name
    deleteFolder       folderId, reassignToSystem
    moveFolder         folderId, newParent
    assignMedia        itemIds, folderId
    getFolderContents  folderId, page, perPage
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import pydantic
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..context import AppContext, get_context
from ..core.auth import ensure_folder_manager, optional_auth, require_auth
from ..database import get_db
from ..exceptions import ErrorCode, MediaNestException, UnknownActionError, ValidationError
from ..schemas.folder import (
    AssignMediaPayload,
    CreateFolderPayload,
    DeleteFolderPayload,
    FolderContentsPayload,
    MoveFolderPayload,
    RenameFolderPayload,
)
from ..schemas.rpc import RpcRequest, RpcResponse
from ..services.folder_service import FolderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["rpc"])

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class _Action:
    handler: Callable[[FolderService, Dict[str, Any]], BaseModel]
    mutating: bool


_ACTIONS: Dict[str, _Action] = {}


def action(name: str, mutating: bool = False):
    """Register a handler under an action name."""
    def decorator(fn):
        _ACTIONS[name] = _Action(handler=fn, mutating=mutating)
        return fn
    return decorator


# -- Handlers -------------------------------------------------------------

@action("getFolders")
def _get_folders(service: FolderService, payload: Dict[str, Any]):
    return service.snapshot()


@action("createFolder", mutating=True)
def _create_folder(service: FolderService, payload: Dict[str, Any]):
    data = CreateFolderPayload.model_validate(payload)
    return service.create_folder(data.name, data.parent)


@action("renameFolder", mutating=True)
def _rename_folder(service: FolderService, payload: Dict[str, Any]):
    data = RenameFolderPayload.model_validate(payload)
    return service.rename_folder(data.folder_id, data.name)


@action("deleteFolder", mutating=True)
def _delete_folder(service: FolderService, payload: Dict[str, Any]):
    data = DeleteFolderPayload.model_validate(payload)
    return service.delete_folder(data.folder_id, reassign_to_system=data.reassign_to_system)


@action("moveFolder", mutating=True)
def _move_folder(service: FolderService, payload: Dict[str, Any]):
    data = MoveFolderPayload.model_validate(payload)
    return service.move_folder(data.folder_id, data.new_parent)


@action("assignMedia", mutating=True)
def _assign_media(service: FolderService, payload: Dict[str, Any]):
    data = AssignMediaPayload.model_validate(payload)
    return service.assign_items(data.item_ids, data.folder_id)


@action("getFolderContents")
def _get_folder_contents(service: FolderService, payload: Dict[str, Any]):
    data = FolderContentsPayload.model_validate(payload)
    return service.get_folder_contents(data.folder_id, page=data.page, per_page=data.per_page)


# -- Dispatch -------------------------------------------------------------

def _payload_error(exc: pydantic.ValidationError) -> ValidationError:
    """First schema error as a ValidationError naming the offending field."""
    first = exc.errors()[0] if exc.errors() else {}
    loc = first.get("loc") or ()
    field = str(loc[0]) if loc else None
    return ValidationError(
        f"Invalid payload: {first.get('msg', 'validation failed')}",
        field=field,
    )


def dispatch(
    ctx: AppContext,
    db: Session,
    request: RpcRequest,
    credentials: Optional[HTTPAuthorizationCredentials] = None,
) -> Any:
    """Run one action and return its result as wire data.

    Raises:
        MediaNestException: any failure, already in wire-ready form.
    """
    entry = _ACTIONS.get(request.action)
    if entry is None:
        raise UnknownActionError(request.action)

    if entry.mutating:
        auth = require_auth(credentials, ctx)
        ensure_folder_manager(auth)
    else:
        auth = optional_auth(credentials, ctx)

    service = FolderService(ctx, db, user_id=auth.user_id)
    try:
        result = entry.handler(service, request.payload)
    except pydantic.ValidationError as e:
        raise _payload_error(e) from e
    return result.model_dump(mode="json", by_alias=True)


@router.post("/rpc")
def rpc(
    request: RpcRequest,
    ctx: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> JSONResponse:
    logger.debug("RPC action", extra={"action": request.action})
    try:
        data = dispatch(ctx, db, request, credentials)
    except MediaNestException as e:
        log = logger.warning if e.status_code < 500 else logger.error
        log(
            f"RPC action failed: {request.action}",
            extra={"action": request.action, "error_code": e.error_code.value, "details": e.details},
        )
        return _failure(e)
    except Exception:
        logger.exception(f"RPC action crashed: {request.action}", extra={"action": request.action})
        return _failure(MediaNestException("An unexpected error occurred.", ErrorCode.INTERNAL_ERROR))
    return JSONResponse(content=RpcResponse.ok(data).model_dump())


def _failure(exc: MediaNestException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=RpcResponse.fail(exc.to_dict()).model_dump(),
    )
