"""
Central API route registration. All HTTP controllers are mounted here with /api prefix.
"""
import logging
from fastapi import FastAPI

from labelsync.http.controllers import (
    sync,
    orders,
    marketplaces,
    labels,
    workers,
)

logger = logging.getLogger(__name__)


def register_routes(app: FastAPI, settings) -> None:
    """Register all API routers. Call from main.py after creating the FastAPI app."""
    prefix = settings.API_PREFIX
    app.include_router(sync.router, prefix=f"{prefix}/sync", tags=["sync"])
    app.include_router(orders.router, prefix=f"{prefix}/orders", tags=["orders"])
    app.include_router(marketplaces.router, prefix=f"{prefix}/marketplaces", tags=["marketplaces"])
    app.include_router(labels.router, prefix=f"{prefix}/labels", tags=["labels"])
    app.include_router(workers.router, prefix=f"{prefix}/workers", tags=["workers"])
    logger.debug("Registered API routers under %s", prefix)
