"""
Worker job routes
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from labelsync.auth import get_current_user
from labelsync.database import get_db
from labelsync.models import SyncJob, SyncJobType, User
from labelsync.services.shipping_info_sync import run_user_shipping_info

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def list_worker_jobs(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Recent shipping-info sweeps for the current user"""
    jobs = (
        db.query(SyncJob)
        .filter(SyncJob.user_id == current_user.id, SyncJob.job_type == SyncJobType.SHIPPING_INFO)
        .order_by(SyncJob.started_at.desc())
        .limit(50)
        .all()
    )
    return [
        {
            "id": job.id,
            "type": job.job_type.value,
            "status": job.status.value if job.status else None,
            "lastError": job.error_message,
            "recordsCreated": job.records_created or 0,
            "recordsUpdated": job.records_updated or 0,
            "startedAt": job.started_at.isoformat() if job.started_at else None,
            "finishedAt": job.finished_at.isoformat() if job.finished_at else None,
        }
        for job in jobs
    ]


@router.post("/shipping-info/run")
async def run_shipping_info(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Run the shipping-info pass now for the current user only"""
    logger.info("Shipping info sync triggered by user %s", current_user.id)
    try:
        return await run_user_shipping_info(db, current_user)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Shipping info sync failed: {e}"
        )
