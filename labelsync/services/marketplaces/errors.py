"""
Errors raised by marketplace fetch clients.
"""
from typing import Optional

import httpx


class MarketplaceError(Exception):
    """Base class for marketplace client failures."""


class MissingCredentialsError(MarketplaceError):
    """Required credential fields are absent; raised before any network call."""


class UpstreamError(MarketplaceError):
    """Non-2xx response. The message embeds status and raw body for operators."""

    def __init__(self, service: str, status_code: int, body: str):
        super().__init__(f"{service} API {status_code}: {body}")
        self.service = service
        self.status_code = status_code
        self.body = body


class UnsupportedMarketplaceError(MarketplaceError):
    pass


def ensure_success(resp: httpx.Response, service: str, body: Optional[str] = None) -> None:
    """Raise UpstreamError unless the response is 2xx."""
    if not resp.is_success:
        raise UpstreamError(service, resp.status_code, body if body is not None else resp.text)
