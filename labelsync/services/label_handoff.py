"""
Label hand-off to the user's Google Apps Script deployment.
We only build and post the request and record the outcome; label purchase
happens on the script side.
"""
import logging
from typing import Any, Optional

import httpx
from sqlalchemy.orm import Session

from labelsync.config import settings
from labelsync.models import LabelJob, LabelJobStatus, Order, OrderShipping, ShipperProfile, User
from labelsync.services import http_client

logger = logging.getLogger(__name__)


def _recipient(order: Order, shipping: Optional[OrderShipping]) -> dict[str, Any]:
    if shipping is not None:
        return {
            "name": " ".join(p for p in (shipping.first_name, shipping.last_name) if p) or order.customer_name,
            "company": shipping.company,
            "street1": shipping.street1,
            "street2": shipping.street2,
            "city": shipping.city,
            "state": shipping.state,
            "zip": shipping.postal_code,
            "country": shipping.country_code,
            "phone": shipping.phone,
        }
    address = order.shipping_address or {}
    return {
        "name": address.get("name") or order.customer_name,
        "company": address.get("company") or "",
        "street1": address.get("street1") or "",
        "street2": address.get("street2") or "",
        "city": address.get("city") or "",
        "state": address.get("state") or "",
        "zip": address.get("zip") or "",
        "country": address.get("country") or "",
        "phone": address.get("phone") or "",
    }


def _shipper(profile: Optional[ShipperProfile]) -> dict[str, Any]:
    if profile is None:
        return {}
    return {
        "name": profile.shipper_name or "",
        "personName": profile.shipper_person_name or "",
        "phone": profile.shipper_phone_number or "",
        "street1": profile.shipper_street1 or "",
        "street2": profile.shipper_street2 or "",
        "city": profile.shipper_city or "",
        "state": profile.shipper_state_code or "",
        "zip": profile.shipper_postal_code or "",
        "country": profile.shipper_country_code or "",
    }


def build_label_request(
    order: Order,
    shipping: Optional[OrderShipping],
    shipper_profile: Optional[ShipperProfile],
) -> dict[str, Any]:
    """Label payload for one order. Recipient prefers the OrderShipping row over the order address."""
    currency = (shipper_profile.default_currency_code if shipper_profile else None) or order.currency or "USD"
    return {
        "orderId": order.id,
        "marketplace": order.marketplace,
        "marketplaceKey": order.marketplace_key,
        "recipient": _recipient(order, shipping),
        "shipper": _shipper(shipper_profile),
        "currency": currency,
        "dutiesPaymentType": (shipper_profile.duties_payment_type if shipper_profile else None) or "SENDER",
        "items": [
            {
                "sku": item.sku,
                "productName": item.product_name,
                "quantity": item.quantity,
                "unitPrice": float(item.unit_price or 0),
                "totalPrice": float(item.total_price or 0),
            }
            for item in order.items
        ],
    }


def _response_payload(resp: httpx.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {"status": resp.status_code, "body": resp.text}
    return data if isinstance(data, dict) else {"status": resp.status_code, "body": data}


async def submit_label_requests(
    db: Session,
    user: User,
    order_ids: list[str],
    access_token: Optional[str] = None,
) -> list[dict[str, Any]]:
    """
    Post one generateLabel request per order and record a LabelJob for each.
    Raises ValueError when the user has no Apps Script or sheet configured.
    Orders that do not belong to the user are reported as failed without a job.
    """
    if not user.apps_script_id or not user.google_sheet_id:
        raise ValueError("Apps Script ID and Google Sheet ID must be configured")

    url = f"{settings.APPS_SCRIPT_BASE_URL}/{user.apps_script_id}/exec"
    headers = {"Content-Type": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"

    results = []
    for order_id in order_ids:
        order = db.query(Order).filter(Order.id == order_id, Order.user_id == user.id).first()
        if not order:
            results.append({"orderId": order_id, "status": LabelJobStatus.FAILED.value, "error": "Order not found"})
            continue

        label = build_label_request(order, order.shipping, user.shipper_profile)
        job = LabelJob(order_id=order.id, user_id=user.id, status=LabelJobStatus.PENDING, request_payload=label)
        db.add(job)
        db.commit()
        db.refresh(job)

        body = {"action": "generateLabel", "sheetId": user.google_sheet_id, "label": label}
        try:
            resp = await http_client.post_no_retry(url, json=body, headers=headers, timeout=settings.APPS_SCRIPT_TIMEOUT_SEC)
            payload = _response_payload(resp)
            if resp.is_success and not payload.get("error"):
                job.status = LabelJobStatus.SUBMITTED
                job.response_payload = payload
            else:
                job.status = LabelJobStatus.FAILED
                job.response_payload = payload
                job.error = str(payload.get("error") or f"Apps Script returned {resp.status_code}")
        except httpx.HTTPError as e:
            logger.warning("Label hand-off for order %s failed: %s", order.id, e)
            job.status = LabelJobStatus.FAILED
            job.error = str(e) or e.__class__.__name__
        db.commit()

        results.append({
            "orderId": order.id,
            "labelJobId": job.id,
            "status": job.status.value,
            "response": job.response_payload,
            "error": job.error,
        })
    return results
