"""
Marketplace adapters keyed by slug.

Each adapter module exposes DISPLAY_NAME, fetch_orders(credentials, since=None),
normalize_order(raw), order_identity(raw) and extract_recipient(raw).
"""
from types import ModuleType

from labelsync.services.marketplaces import shippo, trendyol, veeqo
from labelsync.services.marketplaces.errors import UnsupportedMarketplaceError

ADAPTERS: dict[str, ModuleType] = {
    veeqo.SLUG: veeqo,
    trendyol.SLUG: trendyol,
    shippo.SLUG: shippo,
}


def get_adapter(marketplace: str) -> ModuleType:
    adapter = ADAPTERS.get((marketplace or "").lower())
    if adapter is None:
        raise UnsupportedMarketplaceError(f"Unsupported marketplace: {marketplace}")
    return adapter
