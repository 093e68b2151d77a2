"""
Order routes
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from labelsync.auth import get_current_user
from labelsync.database import get_db
from labelsync.http.requests import UpdateProductionStatusRequest
from labelsync.models import Order, User

logger = logging.getLogger(__name__)
router = APIRouter()


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _order_response(order: Order) -> dict:
    return {
        "id": order.id,
        "source": order.source,
        "marketplace": order.marketplace,
        "marketplaceKey": order.marketplace_key,
        "customerName": order.customer_name,
        "status": order.status,
        "currency": order.currency,
        "totalPrice": float(order.total_price or 0),
        "shippingAddress": order.shipping_address,
        "marketplaceCreatedAt": _isoformat(order.marketplace_created_at),
        "shipByDate": _isoformat(order.ship_by_date),
        "packingStatus": order.packing_status,
        "productionNotes": order.production_notes,
        "packingEditedAt": _isoformat(order.packing_edited_at),
        "productionEditedAt": _isoformat(order.production_edited_at),
        "createdAt": _isoformat(order.created_at),
        "updatedAt": _isoformat(order.updated_at),
        "items": [
            {
                "id": item.id,
                "sku": item.sku,
                "productName": item.product_name,
                "variantInfo": item.variant_info,
                "quantity": item.quantity,
                "unitPrice": float(item.unit_price or 0),
                "totalPrice": float(item.total_price or 0),
                "imageUrl": item.image_url,
                "notes": item.notes,
            }
            for item in order.items
        ],
    }


@router.get("", response_model=dict)
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    status_filter: Optional[str] = Query(None, alias="status"),
    marketplace: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List the user's orders, most recently synced first"""
    query = db.query(Order).filter(Order.user_id == current_user.id)

    if start_date:
        query = query.filter(Order.marketplace_created_at >= start_date)
    if end_date:
        query = query.filter(Order.marketplace_created_at <= end_date)
    if status_filter:
        query = query.filter(Order.status == status_filter)
    if marketplace:
        query = query.filter(Order.marketplace == marketplace)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Order.customer_name.ilike(pattern),
                Order.marketplace_key.ilike(pattern)
            )
        )

    total = query.count()
    ordering = Order.updated_at.asc() if sort == "asc" else Order.updated_at.desc()
    orders = (
        query.options(selectinload(Order.items))
        .order_by(ordering, Order.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "orders": [_order_response(order) for order in orders],
        "total": total,
        "page": page,
        "pageSize": limit,
    }


@router.patch("/{order_id}/production-status", response_model=dict)
async def update_production_status(
    order_id: str,
    request: UpdateProductionStatusRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Set packing status and production notes on one of the user's orders"""
    order = db.query(Order).filter(Order.id == order_id, Order.user_id == current_user.id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    edited_at = datetime.utcnow()
    order.packing_status = request.packingStatus
    order.production_notes = request.productionNotes
    order.packing_edited_at = edited_at
    order.production_edited_at = edited_at
    db.commit()
    db.refresh(order)
    logger.info("User %s updated production status of order %s", current_user.id, order.id)

    return {"order": _order_response(order)}
