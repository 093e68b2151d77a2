"""
Order sync routes
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from labelsync.auth import get_current_user
from labelsync.database import get_db
from labelsync.http.requests import ResyncResponse, SyncJobListResponse, SyncOrdersRequest, SyncResultResponse
from labelsync.models import User
from labelsync.services.marketplaces.errors import MarketplaceError
from labelsync.services.sync_engine import SyncEngine

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/orders", response_model=SyncResultResponse)
async def sync_orders(
    request: Optional[SyncOrdersRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Pull orders from every marketplace the user has configured"""
    since = request.since if request else None
    return await SyncEngine(db).sync_user(current_user.id, since=since)

@router.post("/orders/{order_id}/resync", response_model=ResyncResponse)
async def resync_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Re-fetch a single stored order and replace its items"""
    try:
        result = await SyncEngine(db).resync_order(current_user.id, order_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (MarketplaceError, TimeoutError) as e:
        logger.warning("Resync of order %s failed: %s", order_id, e)
        raise HTTPException(status_code=502, detail=str(e))
    return {"orderId": result.order_id, "created": result.created}

@router.get("/jobs", response_model=SyncJobListResponse)
async def list_sync_jobs(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List recent sync jobs for the current user"""
    return {"jobs": SyncEngine(db).get_sync_history(current_user.id, limit=limit)}
