"""
Normalized order shape shared by every marketplace adapter.
Adapters coerce raw values to these types; the reconciler persists them as-is.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, computed_field


class ShippingAddress(BaseModel):
    name: str = "Unknown Customer"
    company: Optional[str] = None
    street1: str = ""
    street2: Optional[str] = None
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""
    phone: Optional[str] = None


class OrderItemFields(BaseModel):
    marketplace_line_id: Optional[str] = None
    sku: str = "UNKNOWN"
    product_name: str = "Unknown Product"
    variant_info: Optional[str] = None
    quantity: int = 0
    unit_price: float = 0.0
    image_url: Optional[str] = None
    notes: Optional[str] = None

    @computed_field
    @property
    def total_price(self) -> float:
        return self.quantity * self.unit_price


class OrderFields(BaseModel):
    source: str
    marketplace: str
    marketplace_key: str
    marketplace_created_at: datetime
    customer_name: str = "Unknown Customer"
    status: str = "UNKNOWN"
    ship_by_date: Optional[datetime] = None
    currency: str = "USD"
    total_price: float = 0.0
    shipping_address: ShippingAddress = ShippingAddress()


class NormalizedOrder(BaseModel):
    order: OrderFields
    items: list[OrderItemFields] = []
