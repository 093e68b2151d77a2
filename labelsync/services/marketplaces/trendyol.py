"""
Trendyol seller order client and normalizer.

Two listing modes share one request builder: "Created" orders sorted by
creation date, and shipment updates (no status filter) sorted by package
last-modified date. Both require an epoch-ms window.
"""
import base64
import logging
from datetime import datetime, timedelta, timezone
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
from labelsync.utils.coerce import join_names, optional_str, to_datetime, to_float, to_int
from labelsync.utils.payload import first_present, get

logger = logging.getLogger(__name__)

SLUG = "trendyol"
DISPLAY_NAME = "Trendyol"

CREATED_STATUS = "Created"


def _basic_auth(api_key: str, api_secret: str) -> str:
    token = base64.b64encode(f"{api_key}:{api_secret}".encode()).decode()
    return f"Basic {token}"


def build_query(
    *,
    status: Optional[str],
    start_date_ms: int,
    end_date_ms: int,
    page_size: Optional[int] = None,
) -> dict[str, Any]:
    params: dict[str, Any] = {}
    if status:
        params["status"] = status
    params["startDate"] = start_date_ms
    params["endDate"] = end_date_ms
    params["orderByField"] = "createdDate" if status == CREATED_STATUS else "PackageLastModifiedDate"
    params["orderByDirection"] = "DESC"
    params["size"] = page_size or settings.TRENDYOL_PAGE_SIZE
    return params


async def get_orders(
    *,
    supplier_id: Optional[str],
    api_key: Optional[str],
    api_secret: Optional[str],
    status: Optional[str],
    start_date_ms: int,
    end_date_ms: int,
    page_size: Optional[int] = None,
    timeout: float = 30.0,
) -> list[dict[str, Any]]:
    """One listing call. Returns the `content` array, or [] when it is missing."""
    if not supplier_id or not api_key or not api_secret:
        raise MissingCredentialsError("Missing Trendyol credentials")

    url = f"{settings.TRENDYOL_API_BASE}/{supplier_id}/orders"
    params = build_query(
        status=status, start_date_ms=start_date_ms, end_date_ms=end_date_ms, page_size=page_size
    )
    headers = {"Authorization": _basic_auth(api_key, api_secret)}
    resp = await http_client.get_with_retry(url, params=params, headers=headers, timeout=timeout)
    ensure_success(resp, DISPLAY_NAME)
    data = resp.json()
    content = data.get("content") if isinstance(data, dict) else None
    return content if isinstance(content, list) else []


async def fetch_created_orders(**params: Any) -> list[dict[str, Any]]:
    return await get_orders(status=CREATED_STATUS, **params)


async def fetch_shipment_updates(**params: Any) -> list[dict[str, Any]]:
    return await get_orders(status=None, **params)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_ms(value: datetime) -> int:
    return int(_as_utc(value).timestamp() * 1000)


async def fetch_orders(credentials: Optional[dict[str, Any]], since: Optional[datetime] = None) -> list[dict[str, Any]]:
    """
    Created orders plus shipment updates over the lookback window (or since
    ``since``), de-duplicated by order key. Shipment updates win on collision
    since they carry the latest package state.
    """
    creds = credentials or {}
    end = datetime.now(timezone.utc)
    earliest = end - timedelta(days=settings.TRENDYOL_LOOKBACK_DAYS)
    # Upstream rejects windows longer than the lookback
    start = max(_as_utc(since), earliest) if since else earliest
    params = {
        "supplier_id": creds.get("supplierId"),
        "api_key": creds.get("apiKey"),
        "api_secret": creds.get("apiSecret"),
        "start_date_ms": _to_ms(start),
        "end_date_ms": _to_ms(end),
    }
    created = await fetch_created_orders(**params)
    updates = await fetch_shipment_updates(**params)

    merged: list[dict[str, Any]] = []
    seen: set[str] = set()
    for raw in updates + created:
        key = _marketplace_key(raw)
        if key is not None:
            if key in seen:
                continue
            seen.add(key)
        merged.append(raw)
    return merged


def _marketplace_key(raw: dict[str, Any]) -> Optional[str]:
    value = first_present(raw, ["id", "orderNumber"])
    if value is None or str(value).strip() == "":
        return None
    return str(value)


def order_identity(raw: dict[str, Any]) -> Optional[tuple[str, str]]:
    key = _marketplace_key(raw)
    return (DISPLAY_NAME, key) if key is not None else None


def _line_item(line: dict[str, Any]) -> OrderItemFields:
    line_id = get(line, "id")
    variant = ", ".join(str(v) for v in (get(line, "productSize"), get(line, "productColor")) if v)
    return OrderItemFields(
        marketplace_line_id=str(line_id) if line_id not in (None, "") else None,
        sku=str(first_present(line, ["merchantSku", "sku"], default="UNKNOWN")),
        product_name=str(get(line, "productName") or "Unknown Product"),
        variant_info=variant or None,
        quantity=to_int(get(line, "quantity")),
        unit_price=to_float(get(line, "price")),
        image_url=optional_str(get(line, "imageUrl")),
    )


def normalize_order(raw: dict[str, Any]) -> Optional[NormalizedOrder]:
    key = _marketplace_key(raw)
    if key is None:
        logger.warning("Skipping Trendyol order with no id/orderNumber")
        return None

    address_name = join_names([get(raw, "shipmentAddress.firstName"), get(raw, "shipmentAddress.lastName")])
    customer_name = (
        address_name
        or join_names([get(raw, "customerFirstName"), get(raw, "customerLastName")])
        or "Unknown Customer"
    )
    status = str(first_present(raw, ["status", "shipmentPackageStatus"], default="unknown"))

    address = ShippingAddress(
        name=address_name or str(get(raw, "shipmentAddress.fullName") or "Unknown Customer"),
        company=optional_str(get(raw, "shipmentAddress.company")),
        street1=str(get(raw, "shipmentAddress.address1") or ""),
        street2=optional_str(get(raw, "shipmentAddress.address2")),
        city=str(get(raw, "shipmentAddress.city") or ""),
        state=str(get(raw, "shipmentAddress.district") or ""),
        zip=str(get(raw, "shipmentAddress.postalCode") or ""),
        country=str(get(raw, "shipmentAddress.countryCode") or ""),
        phone=optional_str(get(raw, "shipmentAddress.phone")),
    )

    lines = get(raw, "lines")
    items = [_line_item(line) for line in lines if isinstance(line, dict)] if isinstance(lines, list) else []

    order = OrderFields(
        source=SLUG,
        marketplace=DISPLAY_NAME,
        marketplace_key=key,
        marketplace_created_at=to_datetime(get(raw, "orderDate")) or datetime.utcnow(),
        customer_name=customer_name,
        status=status.upper().replace(" ", "_"),
        ship_by_date=to_datetime(
            first_present(raw, ["agreedDeliveryDate", "estimatedDeliveryStartDate", "estimatedDeliveryEndDate"])
        ),
        currency=str(get(raw, "currencyCode") or "TRY"),
        total_price=to_float(first_present(raw, ["totalPrice", "grossAmount"])),
        shipping_address=address,
    )
    return NormalizedOrder(order=order, items=items)


def extract_recipient(raw: dict[str, Any]) -> dict[str, Any]:
    address = get(raw, "shipmentAddress") or {}
    return {
        "full_name": get(address, "fullName"),
        "first_name": get(address, "firstName"),
        "last_name": get(address, "lastName"),
        "company": get(address, "company"),
        "street1": get(address, "address1"),
        "street2": get(address, "address2"),
        "city": get(address, "city"),
        "state": get(address, "district"),
        "postal_code": get(address, "postalCode"),
        "country_code": get(address, "countryCode"),
        "phone": get(address, "phone"),
    }
