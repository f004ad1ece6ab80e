"""API routes."""

from .collections import router as collections_router
from .links import router as links_router
from .tree import router as tree_router

__all__ = [
    "collections_router",
    "links_router",
    "tree_router",
]
