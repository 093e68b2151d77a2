"""
Order sync engine: fetch every configured marketplace for a user, normalize,
and reconcile into Order/OrderItem.

Failures are contained at two levels. A marketplace whose fetch fails (missing
credentials, transport error, non-2xx, timeout) is reported in ``errors`` and
does not block the others; an order that fails to normalize or persist is
counted in ``failed`` and does not abort its batch.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from labelsync.config import settings
from labelsync.models import (
    LogLevel,
    Order,
    SyncJob,
    SyncJobStatus,
    SyncJobType,
    SyncLog,
)
from labelsync.services import marketplaces
from labelsync.services.credentials import get_marketplace_credentials, list_configured_marketplaces
from labelsync.services.order_reconciler import ReconcileResult, reconcile

logger = logging.getLogger(__name__)


async def fetch_marketplace_orders(
    marketplace: str,
    credentials: Optional[dict],
    since: Optional[datetime] = None,
    timeout: Optional[float] = None,
) -> list[dict]:
    """Run one adapter fetch under the per-marketplace timeout."""
    adapter = marketplaces.get_adapter(marketplace)
    timeout = timeout if timeout is not None else settings.MARKETPLACE_FETCH_TIMEOUT_SEC
    try:
        return await asyncio.wait_for(adapter.fetch_orders(credentials, since=since), timeout=timeout)
    except asyncio.TimeoutError:
        raise TimeoutError(f"{adapter.DISPLAY_NAME} fetch timed out after {timeout:g}s") from None


class SyncEngine:
    """Per-run sync context bound to one database session."""

    def __init__(self, db: Session, fetch_timeout: Optional[float] = None):
        self.db = db
        self.fetch_timeout = fetch_timeout if fetch_timeout is not None else settings.MARKETPLACE_FETCH_TIMEOUT_SEC

    async def _fetch(self, marketplace: str, credentials: Optional[dict], since: Optional[datetime]) -> list[dict]:
        return await fetch_marketplace_orders(marketplace, credentials, since=since, timeout=self.fetch_timeout)

    def _start_job(self, user_id: str, marketplace: str) -> SyncJob:
        job = SyncJob(
            user_id=user_id,
            marketplace=marketplace,
            job_type=SyncJobType.PULL_ORDERS,
            status=SyncJobStatus.RUNNING,
            started_at=datetime.utcnow(),
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        return job

    def _log(self, job: SyncJob, level: LogLevel, message: str, raw_payload: Any = None) -> None:
        self.db.add(SyncLog(sync_job_id=job.id, level=level, message=message, raw_payload=raw_payload))
        self.db.commit()

    def _fail_job(self, job: SyncJob, error: str) -> None:
        job.status = SyncJobStatus.FAILED
        job.finished_at = datetime.utcnow()
        job.error_message = error
        self.db.add(SyncLog(sync_job_id=job.id, level=LogLevel.ERROR, message=f"Order fetch failed: {error}"))
        self.db.commit()

    def _reconcile_batch(self, user_id: str, marketplace: str, job: SyncJob, raw_orders: list[dict]) -> dict:
        adapter = marketplaces.get_adapter(marketplace)
        counts = {"created": 0, "updated": 0, "skipped": 0, "failed": 0}

        for raw in raw_orders:
            identity = adapter.order_identity(raw) if isinstance(raw, dict) else None
            try:
                normalized = adapter.normalize_order(raw)
                if normalized is None:
                    counts["skipped"] += 1
                    continue
                result = reconcile(self.db, user_id, normalized)
            except Exception as e:
                counts["failed"] += 1
                key = identity[1] if identity else None
                logger.warning("User %s: %s order %s failed: %s", user_id, adapter.DISPLAY_NAME, key, e)
                self._log(job, LogLevel.ERROR, f"Order {key} failed: {e}", {"marketplaceKey": key, "error": str(e)})
                continue
            if result.created:
                counts["created"] += 1
            else:
                counts["updated"] += 1

        job.status = SyncJobStatus.SUCCESS
        job.finished_at = datetime.utcnow()
        job.records_created = counts["created"]
        job.records_updated = counts["updated"]
        job.records_failed = counts["failed"]
        self.db.add(SyncLog(
            sync_job_id=job.id,
            level=LogLevel.INFO,
            message=(
                f"Order sync completed: {counts['created']} new, {counts['updated']} updated, "
                f"{counts['skipped']} skipped, {counts['failed']} failed"
            ),
        ))
        self.db.commit()
        return counts

    async def sync_user(self, user_id: str, since: Optional[datetime] = None) -> dict:
        """
        Sync every marketplace the user has credentials for.

        Returns ``{"newOrders", "updatedOrders", "skipped", "failed", "errors"}``
        where ``errors`` maps marketplace slug to the failure message.
        """
        configured = list_configured_marketplaces(self.db, user_id)
        result: dict[str, Any] = {"newOrders": 0, "updatedOrders": 0, "skipped": 0, "failed": 0, "errors": {}}
        if not configured:
            logger.info("User %s has no marketplace credentials; nothing to sync", user_id)
            return result

        credentials = {marketplace: get_marketplace_credentials(self.db, user_id, marketplace) for marketplace in configured}
        jobs = {marketplace: self._start_job(user_id, marketplace) for marketplace in configured}

        fetched = await asyncio.gather(
            *(self._fetch(marketplace, credentials[marketplace], since) for marketplace in configured),
            return_exceptions=True,
        )

        for marketplace, outcome in zip(configured, fetched):
            job = jobs[marketplace]
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                error = str(outcome) or outcome.__class__.__name__
                logger.warning("User %s: %s fetch failed: %s", user_id, marketplace, error)
                result["errors"][marketplace] = error
                self._fail_job(job, error)
                continue

            logger.info("User %s: processing %s %s orders", user_id, len(outcome), marketplace)
            counts = self._reconcile_batch(user_id, marketplace, job, outcome)
            result["newOrders"] += counts["created"]
            result["updatedOrders"] += counts["updated"]
            result["skipped"] += counts["skipped"]
            result["failed"] += counts["failed"]

        logger.info(
            "User %s sync complete. New: %s, Updated: %s, Failed: %s, Marketplace errors: %s",
            user_id, result["newOrders"], result["updatedOrders"], result["failed"], len(result["errors"]),
        )
        return result

    async def resync_order(self, user_id: str, order_id: str) -> ReconcileResult:
        """Re-fetch one stored order from its marketplace and reconcile it again."""
        order = self.db.query(Order).filter(Order.id == order_id, Order.user_id == user_id).first()
        if not order:
            raise LookupError(f"Order {order_id} not found")

        adapter = marketplaces.get_adapter(order.source)
        credentials = get_marketplace_credentials(self.db, user_id, order.source)
        raw_orders = await self._fetch(order.source, credentials, None)

        wanted = (order.marketplace, order.marketplace_key)
        for raw in raw_orders:
            if adapter.order_identity(raw) != wanted:
                continue
            normalized = adapter.normalize_order(raw)
            if normalized is None:
                break
            return reconcile(self.db, user_id, normalized)
        raise LookupError(f"{adapter.DISPLAY_NAME} order {order.marketplace_key} not found upstream")

    def get_sync_history(self, user_id: str, limit: int = 50) -> list:
        """Recent sync jobs for a user, newest first."""
        jobs = (
            self.db.query(SyncJob)
            .filter(SyncJob.user_id == user_id)
            .order_by(SyncJob.started_at.desc())
            .limit(limit)
            .all()
        )
        return [
            {
                "id": job.id,
                "marketplace": job.marketplace,
                "jobType": job.job_type.value,
                "status": job.status.value,
                "startedAt": job.started_at.isoformat() if job.started_at else None,
                "completedAt": job.finished_at.isoformat() if job.finished_at else None,
                "recordsCreated": job.records_created or 0,
                "recordsUpdated": job.records_updated or 0,
                "recordsFailed": job.records_failed or 0,
                "errorMessage": job.error_message,
            }
            for job in jobs
        ]


async def sync_user(db: Session, user_id: str, since: Optional[datetime] = None) -> dict:
    return await SyncEngine(db).sync_user(user_id, since=since)


async def resync_order(db: Session, user_id: str, order_id: str) -> ReconcileResult:
    return await SyncEngine(db).resync_order(user_id, order_id)
