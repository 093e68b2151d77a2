"""
Shippo order client and normalizer.
"""
import logging
from datetime import datetime
from typing import Any, Optional

from labelsync.config import settings
from labelsync.services import http_client
from labelsync.services.marketplaces.errors import MissingCredentialsError, ensure_success
from labelsync.services.marketplaces.types import (
    NormalizedOrder,
    OrderFields,
    OrderItemFields,
    ShippingAddress,
)
from labelsync.utils.coerce import clean_text, optional_str, to_datetime, to_float, to_int
from labelsync.utils.payload import first_present, get

logger = logging.getLogger(__name__)

SLUG = "shippo"
DISPLAY_NAME = "Shippo"


async def get_orders(
    *,
    token: Optional[str],
    page_size: Optional[int] = None,
    timeout: float = 30.0,
) -> list[dict[str, Any]]:
    if not token:
        raise MissingCredentialsError("Missing Shippo token")
    resp = await http_client.get_with_retry(
        f"{settings.SHIPPO_API_BASE}/v1/orders/",
        params={"limit": page_size or settings.SHIPPO_PAGE_SIZE},
        headers={"Authorization": f"ShippoToken {token}"},
        timeout=timeout,
    )
    ensure_success(resp, DISPLAY_NAME)
    data = resp.json()
    results = data.get("results") if isinstance(data, dict) else None
    return results if isinstance(results, list) else []


async def fetch_orders(credentials: Optional[dict[str, Any]], since: Optional[datetime] = None) -> list[dict[str, Any]]:
    # The orders listing has no created-after filter; ``since`` is accepted for interface parity
    creds = credentials or {}
    return await get_orders(token=creds.get("token") or creds.get("apiKey"))


def _marketplace_key(raw: dict[str, Any]) -> Optional[str]:
    value = first_present(raw, ["object_id", "order_number"])
    if value is None or str(value).strip() == "":
        return None
    return str(value)


def order_identity(raw: dict[str, Any]) -> Optional[tuple[str, str]]:
    key = _marketplace_key(raw)
    return (DISPLAY_NAME, key) if key is not None else None


def _line_item(line: dict[str, Any], order_notes: str) -> OrderItemFields:
    quantity = to_int(get(line, "quantity"))
    line_total = to_float(get(line, "total_price"))
    line_id = get(line, "object_id")
    return OrderItemFields(
        marketplace_line_id=str(line_id) if line_id else None,
        sku=str(get(line, "sku") or "UNKNOWN"),
        product_name=str(get(line, "title") or "Unknown Product"),
        variant_info=optional_str(get(line, "variant_title")),
        quantity=quantity,
        unit_price=line_total / quantity if quantity else 0.0,
        image_url=optional_str(get(line, "image_url")),
        notes=order_notes or None,
    )


def normalize_order(raw: dict[str, Any]) -> Optional[NormalizedOrder]:
    key = _marketplace_key(raw)
    if key is None:
        logger.warning("Skipping Shippo order with no object_id/order_number")
        return None

    name = clean_text(get(raw, "shipping_address.name")) or "Unknown Customer"
    address = ShippingAddress(
        name=name,
        company=optional_str(get(raw, "shipping_address.company")),
        street1=str(get(raw, "shipping_address.street1") or ""),
        street2=optional_str(get(raw, "shipping_address.street2")),
        city=str(get(raw, "shipping_address.city") or ""),
        state=str(get(raw, "shipping_address.state") or ""),
        zip=str(get(raw, "shipping_address.zip") or ""),
        country=str(get(raw, "shipping_address.country") or ""),
        phone=optional_str(get(raw, "shipping_address.phone")),
    )

    order_notes = clean_text(get(raw, "notes"))
    lines = get(raw, "line_items")
    items = [_line_item(line, order_notes) for line in lines if isinstance(line, dict)] if isinstance(lines, list) else []

    order = OrderFields(
        source=SLUG,
        marketplace=DISPLAY_NAME,
        marketplace_key=key,
        marketplace_created_at=to_datetime(first_present(raw, ["placed_at", "object_created"])) or datetime.utcnow(),
        customer_name=name,
        status=str(get(raw, "order_status") or "unknown").upper().replace(" ", "_"),
        ship_by_date=None,
        currency=str(get(raw, "currency") or "USD"),
        total_price=to_float(get(raw, "total_price")),
        shipping_address=address,
    )
    return NormalizedOrder(order=order, items=items)


def extract_recipient(raw: dict[str, Any]) -> dict[str, Any]:
    address = get(raw, "shipping_address") or {}
    return {
        "full_name": get(address, "name"),
        "first_name": None,
        "last_name": None,
        "company": get(address, "company"),
        "street1": get(address, "street1"),
        "street2": get(address, "street2"),
        "city": get(address, "city"),
        "state": get(address, "state"),
        "postal_code": get(address, "zip"),
        "country_code": get(address, "country"),
        "phone": get(address, "phone"),
    }
