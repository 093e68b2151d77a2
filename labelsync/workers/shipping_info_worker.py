"""
Shipping-info worker: one sweep over all users with its own session.
Started periodically from main.py; can also be run standalone.
"""
import asyncio
import logging

from labelsync.database import session_scope
from labelsync.services.shipping_info_sync import sync_shipping_info

logger = logging.getLogger(__name__)


async def run_shipping_info_worker() -> dict:
    with session_scope() as db:
        return await sync_shipping_info(db)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    result = asyncio.run(run_shipping_info_worker())
    logger.info("Shipping info sync complete: %s", result)
