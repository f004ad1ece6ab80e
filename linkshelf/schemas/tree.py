"""Tree state schemas.

The shape follows drag-and-drop tree widgets: a flat ``items`` map keyed by
id, each item listing its children's ids, plus a synthetic ``"root"`` item.
Keys are strings so the state round-trips through JSON unchanged.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel

ROOT_ID = "root"


class SortMode(str, Enum):
    """Ordering applied within each group of siblings."""
    DEFAULT = "default"          # fetch order; root group follows the user's root order
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"
    DATE_NEWEST = "date_newest"
    DATE_OLDEST = "date_oldest"


class TreeItemData(BaseModel):
    """Display payload of one collection node."""
    id: int
    parent_id: Optional[int] = None
    name: str
    description: Optional[str] = ""
    color: Optional[str] = None
    icon: Optional[str] = None
    icon_weight: Optional[str] = None
    is_public: bool = False
    owner_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    own_link_count: int = 0
    # Own links plus every descendant's.
    link_count: int = 0


class TreeItem(BaseModel):
    id: Union[int, str]
    children: List[int] = []
    has_children: bool = False
    is_expanded: bool = False
    data: Optional[TreeItemData] = None


class TreeState(BaseModel):
    root_id: str = ROOT_ID
    items: Dict[str, TreeItem] = {}

    def get(self, item_id: Union[int, str]) -> Optional[TreeItem]:
        return self.items.get(str(item_id))

    @property
    def root(self) -> TreeItem:
        return self.items[self.root_id]


class TreeOptions(BaseModel):
    """Everything besides the collections that shapes a tree build."""
    previous: Optional[TreeState] = None
    root_order: List[int] = []
    sort_mode: SortMode = SortMode.DEFAULT
    active_collection_id: Optional[int] = None
