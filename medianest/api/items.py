"""Item API: paginated listing by active folder, upload registration, lookup.

``media_folder`` takes the same values as the library filter: empty or -1
for every item, a folder id for that folder only.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..context import AppContext, get_context
from ..core.auth import AuthContext, optional_auth, require_folder_manager
from ..database import get_db
from ..schemas.item import FolderContentsResponse, ItemCreate, ItemResponse
from ..services.folder_service import FolderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/items", tags=["items"])


@router.get("", response_model=FolderContentsResponse)
def list_items(
    media_folder: Optional[str] = Query(None, description="Folder id, or -1 / empty for all items"),
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1),
    ctx: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(optional_auth),
):
    return FolderService(ctx, db).get_folder_contents(media_folder, page=page, per_page=per_page)


@router.post("", response_model=ItemResponse, status_code=201)
def register_item(
    data: ItemCreate,
    ctx: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_folder_manager),
):
    """Record an uploaded item. Without ``folderId`` it is filed under the system folder."""
    return FolderService(ctx, db, user_id=auth.user_id).register_item(data)


@router.get("/{item_id}", response_model=ItemResponse)
def get_item(
    item_id: int,
    ctx: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(optional_auth),
):
    return FolderService(ctx, db).get_item(item_id)
