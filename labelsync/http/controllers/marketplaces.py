"""
Marketplace credential routes (settings collaborator)
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from labelsync.auth import get_current_user
from labelsync.database import get_db
from labelsync.http.requests import MarketplaceCredentialsRequest, REQUIRED_CREDENTIAL_FIELDS
from labelsync.models import MarketplaceCredential, User
from labelsync.services.credentials import list_configured_marketplaces, save_marketplace_credentials

router = APIRouter()

@router.get("")
async def list_marketplaces(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Supported marketplaces and whether the user has configured each"""
    configured = set(list_configured_marketplaces(db, current_user.id))
    return [
        {"marketplace": name, "configured": name in configured}
        for name in REQUIRED_CREDENTIAL_FIELDS
    ]

@router.put("/{marketplace}/credentials")
async def put_credentials(
    marketplace: str,
    request: MarketplaceCredentialsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Store (encrypted) credentials for one marketplace"""
    marketplace = marketplace.lower()
    required = REQUIRED_CREDENTIAL_FIELDS.get(marketplace)
    if required is None:
        raise HTTPException(status_code=404, detail=f"Unsupported marketplace: {marketplace}")
    values = request.credential_values()
    missing = [field for field in required if field not in values]
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing fields: {', '.join(missing)}")

    save_marketplace_credentials(db, current_user.id, marketplace, {k: values[k] for k in required})
    return {"marketplace": marketplace, "configured": True}

@router.delete("/{marketplace}/credentials")
async def delete_credentials(
    marketplace: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Remove stored credentials; the marketplace is skipped by later syncs"""
    cred = db.query(MarketplaceCredential).filter(
        MarketplaceCredential.user_id == current_user.id,
        MarketplaceCredential.marketplace == marketplace.lower()
    ).first()
    if not cred:
        raise HTTPException(status_code=404, detail="Credentials not found")
    db.delete(cred)
    db.commit()
    return {"marketplace": marketplace.lower(), "configured": False}
