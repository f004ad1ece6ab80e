"""Link endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.collection import LinkCreate, LinkResponse, PermissionResponse
from ..services.collection_service import CollectionService

router = APIRouter(prefix="/api/links", tags=["links"])


@router.post("", response_model=LinkResponse, status_code=201)
def create_link(
    data: LinkCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return CollectionService(db).create_link(auth.user_id, data)


@router.get("/{link_id}/permission", response_model=PermissionResponse)
def get_link_permission(
    link_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Effective permission on the collection holding the link."""
    return CollectionService(db).get_permission(auth.user_id, link_id=link_id)
