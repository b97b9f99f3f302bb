"""
API route handlers for aggregated listings and listing actions.
"""
import logging
from typing import List

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from adsync.core import fetch_active_ads, perform_ad_action
from adsync.database import account_updater, db_get_account, db_get_proxy, db_list_accounts, db_list_proxies
from adsync.export import listings_frame
from adsync.models import ActionType, Listing

from ..database import get_db_connection
from ..models import ActionIn, ActionResultOut, AdsResponse, ListingOut

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/ads", tags=["ads"])


async def collect_active_ads(request: Request) -> List[Listing]:
    """Run the cross-account sync against the configured store."""
    with get_db_connection() as conn:
        return await fetch_active_ads(
            db_list_accounts(conn),
            db_list_proxies(conn),
            update_account=account_updater(conn),
            config=request.app.state.session_config,
        )


@router.get("/active", response_model=AdsResponse)
async def get_active_ads(request: Request):
    """Listings of every stored account, merged across accounts."""
    try:
        listings = await collect_active_ads(request)
    except Exception as e:
        logger.error(f"Error fetching active ads: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    items = [ListingOut(**x.to_dict()) for x in listings]
    return AdsResponse(total=len(items), items=items)


@router.get("/export/csv")
async def export_active_ads_csv(request: Request):
    """Export the aggregated listings as CSV."""
    try:
        listings = await collect_active_ads(request)
        csv_content = listings_frame(listings).to_csv(index=False).encode("utf-8")
    except Exception as e:
        logger.error(f"Error exporting CSV: {e}")
        raise HTTPException(status_code=500, detail="Error generating CSV export")

    return StreamingResponse(
        iter([csv_content]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="adsync_listings.csv"'},
    )


@router.post(
    "/{ad_id}/{action}",
    response_model=ActionResultOut,
    response_model_exclude_none=True,
)
async def post_ad_action(ad_id: str, action: str, body: ActionIn, request: Request):
    """
    Reserve, activate or delete one listing of one account.

    A failed action is still HTTP 200; the error code travels in the body.
    """
    try:
        action_type = ActionType(action.strip().lower())
    except ValueError:
        raise HTTPException(status_code=400, detail="UNKNOWN_ACTION")

    with get_db_connection() as conn:
        account = db_get_account(conn, body.account_id)
        if account is None:
            raise HTTPException(status_code=404, detail="Account not found")
        proxy = db_get_proxy(conn, account.proxy_id) if account.proxy_id is not None else None

    result = await perform_ad_action(
        account,
        proxy,
        ad_id,
        action_type,
        ad_href=body.ad_href or "",
        ad_title=body.ad_title or "",
        config=request.app.state.session_config,
    )
    return ActionResultOut(**result.to_dict())
