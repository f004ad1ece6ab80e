"""Collection endpoints: accessible list, CRUD and effective permission."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.collection import (
    AccessibleCollectionView,
    CollectionCreate,
    CollectionResponse,
    CollectionUpdate,
    PermissionResponse,
)
from ..services.collection_service import CollectionService

router = APIRouter(prefix="/api/collections", tags=["collections"])


@router.get("", response_model=List[AccessibleCollectionView])
def list_collections(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Every collection the caller can read, with direct and inherited members."""
    return CollectionService(db).list_accessible(auth.user_id)


@router.post("", response_model=CollectionResponse, status_code=201)
def create_collection(
    data: CollectionCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return CollectionService(db).create_collection(auth.user_id, data)


@router.get("/{collection_id}", response_model=AccessibleCollectionView)
def get_collection(
    collection_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """A single collection. 404 when it does not exist or the caller cannot read it."""
    return CollectionService(db).get_collection(auth.user_id, collection_id)


@router.put("/{collection_id}", response_model=CollectionResponse)
def update_collection(
    collection_id: int,
    data: CollectionUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Update fields, move under another parent (``"root"`` for the top level) or replace members."""
    return CollectionService(db).update_collection(auth.user_id, collection_id, data)


@router.delete("/{collection_id}", status_code=204)
def delete_collection(
    collection_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    CollectionService(db).delete_collection(auth.user_id, collection_id)


@router.get("/{collection_id}/permission", response_model=PermissionResponse)
def get_collection_permission(
    collection_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return CollectionService(db).get_permission(auth.user_id, collection_id=collection_id)
