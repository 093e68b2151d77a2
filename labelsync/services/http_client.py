"""
Outbound HTTP for the marketplace fetchers and the Apps Script label hand-off.

GETs to marketplace APIs are retried; the label POST is sent exactly once.
"""
import asyncio
import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRIES = 2
RETRY_BACKOFF_BASE = 1.0  # seconds


async def _sleep_backoff(attempt: int, retry_after: Optional[str] = None) -> None:
    if attempt <= 0:
        return
    if retry_after and retry_after.isdigit():
        await asyncio.sleep(min(int(retry_after), 30))
        return
    delay = RETRY_BACKOFF_BASE * (2 ** (attempt - 1))
    await asyncio.sleep(min(delay, 10.0))


async def request_with_retry(
    method: str,
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    max_retries: int = DEFAULT_RETRIES,
    retry_on: tuple[int, ...] = (429, 502, 503, 504),
    **kwargs: Any,
) -> httpx.Response:
    """
    Send one request, retrying up to ``max_retries`` more times when the
    status is in ``retry_on`` (429, 502, 503, 504) or the connection or read
    fails or times out.

    A numeric Retry-After header sets the wait, capped at 30s. Otherwise the
    wait starts at 1s and doubles per attempt, capped at 10s. Once retries run
    out the last response is returned as-is and the last transport error is
    re-raised.
    """
    last_exc: Optional[Exception] = None
    for attempt in range(max_retries + 1):
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.request(method, url, **kwargs)
            if attempt < max_retries and resp.status_code in retry_on:
                logger.warning("HTTP %s %s returned %s, retrying", method, url, resp.status_code)
                await _sleep_backoff(attempt + 1, resp.headers.get("retry-after"))
                continue
            return resp
        except (httpx.ConnectError, httpx.ReadTimeout, httpx.ConnectTimeout) as e:
            last_exc = e
            if attempt < max_retries:
                logger.warning("HTTP %s %s attempt %s failed: %s", method, url, attempt + 1, e)
                await _sleep_backoff(attempt + 1)
            else:
                raise
    if last_exc:
        raise last_exc
    return resp  # type: ignore


async def get_with_retry(
    url: str,
    *,
    params: Optional[dict] = None,
    headers: Optional[dict] = None,
    timeout: float = DEFAULT_TIMEOUT,
    max_retries: int = DEFAULT_RETRIES,
) -> httpx.Response:
    """GET through ``request_with_retry``; used by every marketplace fetcher."""
    return await request_with_retry(
        "GET", url, params=params, headers=headers, timeout=timeout, max_retries=max_retries
    )


async def post_no_retry(
    url: str,
    *,
    json: Optional[dict] = None,
    headers: Optional[dict] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> httpx.Response:
    """
    Single-attempt POST that follows redirects. The Apps Script web app
    answers with a redirect to its result, and a label request must not be
    submitted twice.
    """
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        return await client.post(url, json=json or {}, headers=headers or {})
