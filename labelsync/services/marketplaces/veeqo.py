"""
Veeqo order client and normalizer.
API docs: https://developers.veeqo.com/api/operations/orders/
"""
import logging
from datetime import datetime, timezone
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
from labelsync.utils.coerce import clean_text, join_names, optional_str, to_datetime, to_float, to_int
from labelsync.utils.payload import first_present, get

logger = logging.getLogger(__name__)

SLUG = "veeqo"
DISPLAY_NAME = "Veeqo"


async def get_orders(
    *,
    api_key: Optional[str],
    page: int = 1,
    per_page: Optional[int] = None,
    status: Optional[str] = "awaiting_fulfillment",
    created_at_min: Optional[datetime] = None,
    timeout: float = 30.0,
) -> list[dict[str, Any]]:
    """Fetch one page of orders, newest first. Returns [] when the body is not a list."""
    if not api_key:
        raise MissingCredentialsError("Missing Veeqo API key")

    params: dict[str, Any] = {
        "page": page,
        "per_page": per_page or settings.VEEQO_PAGE_SIZE,
        "sort_direction": "desc",
    }
    if status:
        params["status"] = status
    if created_at_min:
        if created_at_min.tzinfo is not None:
            created_at_min = created_at_min.astimezone(timezone.utc)
        params["created_at_min"] = created_at_min.strftime("%Y-%m-%dT%H:%M:%SZ")

    headers = {"Accept": "application/json", "x-api-key": api_key}
    resp = await http_client.get_with_retry(
        f"{settings.VEEQO_API_BASE}/orders", params=params, headers=headers, timeout=timeout
    )
    ensure_success(resp, DISPLAY_NAME)
    data = resp.json()
    return data if isinstance(data, list) else []


async def fetch_orders(credentials: Optional[dict[str, Any]], since: Optional[datetime] = None) -> list[dict[str, Any]]:
    creds = credentials or {}
    return await get_orders(api_key=creds.get("apiKey"), created_at_min=since)


def order_identity(raw: dict[str, Any]) -> Optional[tuple[str, str]]:
    """(marketplace display name, marketplace key) used for storage lookups, or None."""
    key = _marketplace_key(raw)
    if key is None:
        return None
    return _marketplace_name(raw), key


def _marketplace_key(raw: dict[str, Any]) -> Optional[str]:
    value = first_present(raw, ["id", "number"])
    if value is None or str(value).strip() == "":
        return None
    return str(value)


def _marketplace_name(raw: dict[str, Any]) -> str:
    name = get(raw, "channel.name")
    if not isinstance(name, str) or not name.strip():
        return DISPLAY_NAME
    name = name.strip()
    return name[:1].upper() + name[1:]


def _order_notes(raw: dict[str, Any]) -> str:
    notes = get(raw, "notes")
    if isinstance(notes, list):
        return " | ".join(clean_text(n) for n in notes if clean_text(n))
    return clean_text(notes)


def _line_item(line: dict[str, Any], order_notes: str) -> OrderItemFields:
    line_id = get(line, "id")
    notes = " | ".join(n for n in (clean_text(get(line, "additional_options")), order_notes) if n)
    return OrderItemFields(
        marketplace_line_id=str(line_id) if line_id not in (None, "") else None,
        sku=str(get(line, "sku") or "UNKNOWN"),
        product_name=str(
            first_present(line, ["title", "sellable.name", "product.title"], default="Unknown Product")
        ),
        variant_info=optional_str(get(line, "sellable.variant_options_string")),
        quantity=to_int(get(line, "quantity")),
        unit_price=to_float(get(line, "price_before_discount_including_tax")),
        image_url=optional_str(first_present(line, ["image_url", "sellable.image_url", "sellable.images.0.url"])),
        notes=notes or None,
    )


def normalize_order(raw: dict[str, Any]) -> Optional[NormalizedOrder]:
    """Map a Veeqo order to the normalized shape; None when it carries no id or number."""
    key = _marketplace_key(raw)
    if key is None:
        logger.warning("Skipping Veeqo order with no id/number")
        return None

    deliver_name = join_names([get(raw, "deliver_to.first_name"), get(raw, "deliver_to.last_name")])
    customer_name = (
        join_names([
            first_present(raw, ["deliver_to.first_name", "customer.first_name"], default=""),
            first_present(raw, ["deliver_to.last_name", "customer.last_name"], default=""),
        ])
        or "Unknown Customer"
    )
    status_name = get(raw, "status.name") or "unknown"
    status = str(status_name).upper().replace(" ", "_")

    address = ShippingAddress(
        name=deliver_name or "Unknown Customer",
        company=optional_str(get(raw, "deliver_to.company")),
        street1=optional_str(get(raw, "deliver_to.address1")) or "",
        street2=optional_str(get(raw, "deliver_to.address2")),
        city=optional_str(get(raw, "deliver_to.city")) or "",
        state=optional_str(get(raw, "deliver_to.state")) or "",
        zip=optional_str(get(raw, "deliver_to.zip")) or "",
        country=optional_str(get(raw, "deliver_to.country")) or "",
        phone=optional_str(get(raw, "deliver_to.phone")),
    )

    order_notes = _order_notes(raw)
    lines = get(raw, "line_items")
    items = [_line_item(line, order_notes) for line in lines if isinstance(line, dict)] if isinstance(lines, list) else []

    order = OrderFields(
        source=SLUG,
        marketplace=_marketplace_name(raw),
        marketplace_key=key,
        marketplace_created_at=to_datetime(get(raw, "created_at")) or datetime.utcnow(),
        customer_name=customer_name,
        status=status,
        ship_by_date=to_datetime(first_present(raw, ["ship_by_date", "estimated_ship_by", "required_by_date"])),
        currency=str(get(raw, "currency_code") or "USD"),
        total_price=to_float(get(raw, "total_including_tax")),
        shipping_address=address,
    )
    return NormalizedOrder(order=order, items=items)


def extract_recipient(raw: dict[str, Any]) -> dict[str, Any]:
    """Recipient fields consumed by the shipping-info sync."""
    deliver_to = get(raw, "deliver_to") or {}
    return {
        "full_name": get(deliver_to, "full_name") or get(deliver_to, "name"),
        "first_name": get(deliver_to, "first_name"),
        "last_name": get(deliver_to, "last_name"),
        "company": get(deliver_to, "company"),
        "street1": get(deliver_to, "address1"),
        "street2": get(deliver_to, "address2"),
        "city": get(deliver_to, "city"),
        "state": get(deliver_to, "state"),
        "postal_code": get(deliver_to, "zip"),
        "country_code": get(deliver_to, "country"),
        "phone": get(deliver_to, "phone"),
    }

