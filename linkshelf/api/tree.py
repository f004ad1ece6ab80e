"""Tree endpoints: the caller's collection tree and drag-and-drop moves."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.collection import MoveIntent, MoveResult
from ..schemas.tree import SortMode, TreeItem, TreeState
from ..services.collection_service import CollectionService
from ..services.move_service import MoveService

router = APIRouter(prefix="/api/tree", tags=["tree"])


@router.get("", response_model=TreeState)
def get_tree(
    sort: SortMode = Query(SortMode.DEFAULT, description="Sibling ordering"),
    active: Optional[int] = Query(None, description="Collection whose ancestors are expanded"),
    expanded: List[int] = Query([], description="Collections that were expanded before"),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    previous = None
    if expanded:
        previous = TreeState(items={str(cid): TreeItem(id=cid, is_expanded=True) for cid in expanded})
    return CollectionService(db).get_tree(
        auth.user_id,
        sort_mode=sort,
        active_collection_id=active,
        previous=previous,
    )


@router.put("/move", response_model=MoveResult)
def move_collection(
    intent: MoveIntent,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Apply one drag-and-drop move. A ``null`` parent is the top level."""
    return MoveService(db).move_collection(auth.user_id, intent)
