"""
Label generation routes
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from labelsync.auth import get_current_user
from labelsync.database import get_db
from labelsync.http.requests import GenerateLabelsRequest, GenerateLabelsResponse
from labelsync.models import LabelJob, User
from labelsync.services.label_handoff import submit_label_requests

router = APIRouter()

@router.get("")
async def list_label_jobs(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List label hand-offs for the current user"""
    jobs = (
        db.query(LabelJob)
        .filter(LabelJob.user_id == current_user.id)
        .order_by(LabelJob.created_at.desc())
        .limit(100)
        .all()
    )
    return [
        {
            "id": job.id,
            "orderId": job.order_id,
            "status": job.status.value if job.status else None,
            "error": job.error,
            "createdAt": job.created_at.isoformat() if job.created_at else None,
        }
        for job in jobs
    ]

@router.post("/generate", response_model=GenerateLabelsResponse)
async def generate_labels(
    request: GenerateLabelsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Hand orders off to the user's Apps Script for label generation"""
    # Handle both single orderId and orderIds array
    if request.orderId:
        order_ids = [request.orderId]
    elif request.orderIds:
        order_ids = request.orderIds
    else:
        raise HTTPException(
            status_code=400,
            detail="orderId or orderIds is required"
        )

    try:
        results = await submit_label_requests(db, current_user, order_ids, access_token=request.accessToken)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "results": results,
        "submitted": sum(1 for r in results if r["status"] == "SUBMITTED"),
        "failed": sum(1 for r in results if r["status"] == "FAILED"),
    }
