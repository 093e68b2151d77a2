"""
Create-or-update of one normalized order against storage.

The stored order for (user_id, marketplace, marketplace_key) is unique; on
every update all order columns are overwritten and the item set is replaced
wholesale with the items of the current payload, inside one transaction.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from labelsync.models import Order, OrderItem
from labelsync.services.marketplaces.types import NormalizedOrder, OrderItemFields

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    order_id: str
    created: bool


def _money(value: float) -> Decimal:
    return Decimal(str(round(value, 2)))


def _order_columns(normalized: NormalizedOrder) -> dict:
    fields = normalized.order
    return {
        "source": fields.source,
        "marketplace_created_at": fields.marketplace_created_at,
        "customer_name": fields.customer_name,
        "status": fields.status,
        "ship_by_date": fields.ship_by_date,
        "currency": fields.currency,
        "total_price": _money(fields.total_price),
        "shipping_address": fields.shipping_address.model_dump(),
    }


def _build_item(order_id: str, item: OrderItemFields) -> OrderItem:
    return OrderItem(
        order_id=order_id,
        marketplace_line_id=item.marketplace_line_id,
        sku=item.sku,
        product_name=item.product_name,
        variant_info=item.variant_info,
        quantity=item.quantity,
        unit_price=_money(item.unit_price),
        total_price=_money(item.total_price),
        image_url=item.image_url,
        notes=item.notes,
    )


def find_order(db: Session, user_id: str, marketplace: str, marketplace_key: str, lock: bool = False):
    query = db.query(Order).filter(
        Order.user_id == user_id,
        Order.marketplace == marketplace,
        Order.marketplace_key == marketplace_key,
    )
    if lock:
        # Row lock on Postgres; ignored by SQLite, whose writes are already serialized
        query = query.with_for_update()
    return query.first()


def _apply_update(db: Session, existing: Order, normalized: NormalizedOrder) -> None:
    for column, value in _order_columns(normalized).items():
        setattr(existing, column, value)
    existing.updated_at = datetime.utcnow()

    db.query(OrderItem).filter(OrderItem.order_id == existing.id).delete(synchronize_session=False)
    db.expire(existing, ["items"])
    for item in normalized.items:
        db.add(_build_item(existing.id, item))


def reconcile(db: Session, user_id: str, normalized: NormalizedOrder) -> ReconcileResult:
    """
    Persist one normalized order. Commits on success and rolls back on any
    failure, leaving the previously stored order and items untouched.
    """
    marketplace = normalized.order.marketplace
    key = normalized.order.marketplace_key
    try:
        existing = find_order(db, user_id, marketplace, key, lock=True)
        if existing:
            _apply_update(db, existing, normalized)
            db.commit()
            return ReconcileResult(order_id=existing.id, created=False)

        order = Order(
            user_id=user_id,
            marketplace=marketplace,
            marketplace_key=key,
            **_order_columns(normalized),
        )
        db.add(order)
        db.flush()
        for item in normalized.items:
            db.add(_build_item(order.id, item))
        db.commit()
        return ReconcileResult(order_id=order.id, created=True)
    except IntegrityError:
        # A concurrent sync inserted the same order first; fall back to updating it
        db.rollback()
        logger.info("Order %s/%s inserted concurrently, updating instead", marketplace, key)
    except Exception:
        db.rollback()
        raise

    try:
        existing = find_order(db, user_id, marketplace, key, lock=True)
        if existing is None:
            raise RuntimeError(f"Order {marketplace}/{key} vanished during reconciliation")
        _apply_update(db, existing, normalized)
        db.commit()
        return ReconcileResult(order_id=existing.id, created=False)
    except Exception:
        db.rollback()
        raise
