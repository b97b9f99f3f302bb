"""
Pydantic models for API request/response serialization.
"""
from typing import List, Optional

from pydantic import BaseModel


class ListingOut(BaseModel):
    """Output model for one aggregated listing."""
    ad_id: str = ""
    title: str = ""
    price: str = ""
    image: str = ""
    href: str = ""
    status: str = "Active"
    views: Optional[int] = None
    favorites: Optional[int] = None
    account_id: Optional[int] = None
    account_label: str = ""


class AdsResponse(BaseModel):
    """Response model for the aggregated listings."""
    total: int
    items: List[ListingOut]


class ActionIn(BaseModel):
    """Request body for a listing action."""
    account_id: int
    ad_href: Optional[str] = None
    ad_title: Optional[str] = None


class ActionResultOut(BaseModel):
    """Outcome of a listing action; unset fields are omitted."""
    success: bool
    confirmed: Optional[bool] = None
    removed: Optional[bool] = None
    error: Optional[str] = None
    message: Optional[str] = None
