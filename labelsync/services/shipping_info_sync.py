"""
Shipping-info sweep: derive the OrderShipping record for orders the order
sync has already stored. Runs per user on demand or over all users from the
background loop, separately from the order sync, and never creates orders.
"""
import logging
import re
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from labelsync.models import (
    LogLevel,
    OrderShipping,
    ShipperProfile,
    SyncJob,
    SyncJobStatus,
    SyncJobType,
    SyncLog,
    User,
)
from labelsync.services import marketplaces
from labelsync.services.credentials import get_marketplace_credentials, list_configured_marketplaces
from labelsync.services.order_reconciler import find_order
from labelsync.services.sync_engine import fetch_marketplace_orders

logger = logging.getLogger(__name__)

SHIPPING_FIELDS = (
    "first_name",
    "last_name",
    "company",
    "street1",
    "street2",
    "city",
    "state",
    "postal_code",
    "country_code",
    "phone",
)


def clean_phone(phone: Any, shipper_profile: Optional[ShipperProfile] = None) -> str:
    """Digits only; falls back to the shipper's phone, then ""."""
    digits = re.sub(r"\D", "", phone) if isinstance(phone, str) else ""
    if digits:
        return digits
    if shipper_profile and shipper_profile.shipper_phone_number:
        return shipper_profile.shipper_phone_number
    return ""


def _text(value: Any) -> str:
    return str(value).strip() if value not in (None, "") else ""


def build_shipping_record(recipient: dict[str, Any], shipper_profile: Optional[ShipperProfile] = None) -> dict[str, str]:
    """Map adapter recipient fields to OrderShipping columns, every field defaulted to ""."""
    full_name = _text(recipient.get("full_name"))
    first, _, rest = full_name.partition(" ")
    return {
        "first_name": first or _text(recipient.get("first_name")),
        "last_name": rest.strip() or _text(recipient.get("last_name")),
        "company": _text(recipient.get("company")),
        "street1": _text(recipient.get("street1")),
        "street2": _text(recipient.get("street2")),
        "city": _text(recipient.get("city")),
        "state": _text(recipient.get("state")),
        "postal_code": _text(recipient.get("postal_code")),
        "country_code": _text(recipient.get("country_code")),
        "phone": clean_phone(recipient.get("phone"), shipper_profile),
    }


def upsert_order_shipping(db: Session, order_id: str, record: dict[str, str]) -> bool:
    """Insert or overwrite the order's shipping row. Returns True when created."""
    existing = db.query(OrderShipping).filter(OrderShipping.order_id == order_id).first()
    if existing:
        for field in SHIPPING_FIELDS:
            setattr(existing, field, record[field])
        db.commit()
        return False
    try:
        db.add(OrderShipping(order_id=order_id, **record))
        db.commit()
        return True
    except IntegrityError:
        db.rollback()
        existing = db.query(OrderShipping).filter(OrderShipping.order_id == order_id).one()
        for field in SHIPPING_FIELDS:
            setattr(existing, field, record[field])
        db.commit()
        return False


async def sync_user_shipping_info(db: Session, user: User) -> dict:
    summary = {"created": 0, "updated": 0, "unmatched": 0, "failed": 0, "errors": {}}
    for marketplace in list_configured_marketplaces(db, user.id):
        credentials = get_marketplace_credentials(db, user.id, marketplace)
        try:
            adapter = marketplaces.get_adapter(marketplace)
            raw_orders = await fetch_marketplace_orders(marketplace, credentials)
        except Exception as e:
            logger.warning("Shipping info: user %s %s fetch failed: %s", user.id, marketplace, e)
            summary["errors"][marketplace] = str(e) or e.__class__.__name__
            continue

        for raw in raw_orders:
            identity = adapter.order_identity(raw) if isinstance(raw, dict) else None
            if identity is None:
                continue
            order = find_order(db, user.id, *identity)
            if order is None:
                summary["unmatched"] += 1
                continue
            try:
                record = build_shipping_record(adapter.extract_recipient(raw), user.shipper_profile)
                if upsert_order_shipping(db, order.id, record):
                    summary["created"] += 1
                else:
                    summary["updated"] += 1
            except Exception as e:
                db.rollback()
                summary["failed"] += 1
                logger.warning("Shipping info: order %s failed: %s", order.id, e)
    return summary


async def run_user_shipping_info(db: Session, user: User) -> dict:
    """
    One user's shipping-info pass recorded as a SHIPPING_INFO SyncJob.
    Re-raises after marking the job FAILED.
    """
    job = SyncJob(
        user_id=user.id,
        job_type=SyncJobType.SHIPPING_INFO,
        status=SyncJobStatus.RUNNING,
        started_at=datetime.utcnow(),
    )
    db.add(job)
    db.commit()
    try:
        summary = await sync_user_shipping_info(db, user)
    except Exception as e:
        db.rollback()
        logger.exception("Shipping info sync failed for user %s", user.id)
        job.status = SyncJobStatus.FAILED
        job.finished_at = datetime.utcnow()
        job.error_message = str(e)
        db.add(SyncLog(sync_job_id=job.id, level=LogLevel.ERROR, message=f"Shipping info sync failed: {e}"))
        db.commit()
        raise

    job.status = SyncJobStatus.SUCCESS
    job.finished_at = datetime.utcnow()
    job.records_created = summary["created"]
    job.records_updated = summary["updated"]
    job.records_failed = summary["failed"]
    if summary["errors"]:
        job.error_message = "; ".join(f"{m}: {err}" for m, err in summary["errors"].items())
    db.commit()
    return summary


async def sync_shipping_info(db: Session) -> dict:
    """Sweep every user; one user's failure does not stop the others."""
    totals = {"users": 0, "created": 0, "updated": 0, "unmatched": 0, "failed": 0, "errors": {}}
    for user in db.query(User).order_by(User.id).all():
        try:
            summary = await run_user_shipping_info(db, user)
        except Exception as e:
            totals["errors"][user.id] = str(e)
            continue

        totals["users"] += 1
        for field in ("created", "updated", "unmatched", "failed"):
            totals[field] += summary[field]
        for marketplace, error in summary["errors"].items():
            totals["errors"][f"{user.id}:{marketplace}"] = error

    logger.info(
        "Shipping info sync: %s users, %s created, %s updated, %s unmatched, %s failed",
        totals["users"], totals["created"], totals["updated"], totals["unmatched"], totals["failed"],
    )
    return totals
