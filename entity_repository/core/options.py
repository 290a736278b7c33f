"""
Query options shared by the repository contracts and the store handles.
"""
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field


class FindOptions(BaseModel):
    """Options accepted by a handle's find primitives."""
    where: Dict[str, Any] = Field(default_factory=dict, description="Column -> value criteria")
    raw: bool = Field(False, description="Return plain column dicts instead of ORM instances")
    paranoid: bool = Field(True, description="Exclude soft-deleted rows")
    order_by: Tuple[str, ...] = Field(default=(), description="Column names; '-' prefix sorts descending")
    limit: Optional[int] = Field(None, ge=1)
    offset: Optional[int] = Field(None, ge=0)
