"""
Pydantic schemas for request/response validation (Http/Requests).
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from labelsync.models import MarketplaceName, SyncJobType, SyncJobStatus

# Sync Schemas
class SyncOrdersRequest(BaseModel):
    since: Optional[datetime] = None

class SyncResultResponse(BaseModel):
    newOrders: int
    updatedOrders: int
    skipped: int = 0
    failed: int = 0
    errors: Dict[str, str] = Field(default_factory=dict)

class ResyncResponse(BaseModel):
    orderId: str
    created: bool

class SyncJobResponse(BaseModel):
    id: str
    marketplace: Optional[str]
    jobType: SyncJobType
    status: SyncJobStatus
    startedAt: Optional[str]
    completedAt: Optional[str]
    recordsCreated: int = 0
    recordsUpdated: int = 0
    recordsFailed: int = 0
    errorMessage: Optional[str] = None

class SyncJobListResponse(BaseModel):
    jobs: List[SyncJobResponse]

# Order Schemas
class UpdateProductionStatusRequest(BaseModel):
    packingStatus: str
    productionNotes: str

# Credential Schemas
class MarketplaceCredentialsRequest(BaseModel):
    """Veeqo: apiKey. Trendyol: supplierId, apiKey, apiSecret. Shippo: token."""
    supplierId: Optional[str] = None
    apiKey: Optional[str] = None
    apiSecret: Optional[str] = None
    token: Optional[str] = None

    def credential_values(self) -> Dict[str, str]:
        return {k: v for k, v in self.model_dump().items() if v}

REQUIRED_CREDENTIAL_FIELDS = {
    MarketplaceName.VEEQO.value: ("apiKey",),
    MarketplaceName.TRENDYOL.value: ("supplierId", "apiKey", "apiSecret"),
    MarketplaceName.SHIPPO.value: ("token",),
}

# Label Schemas
class GenerateLabelsRequest(BaseModel):
    orderId: Optional[str] = None
    orderIds: Optional[List[str]] = None
    accessToken: Optional[str] = None

    @field_validator("orderIds")
    @classmethod
    def strip_blank_ids(cls, v):
        if v is None:
            return v
        return [order_id.strip() for order_id in v if order_id and order_id.strip()]

class LabelJobResult(BaseModel):
    orderId: str
    labelJobId: Optional[str] = None
    status: str
    response: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

class GenerateLabelsResponse(BaseModel):
    results: List[LabelJobResult]
    submitted: int
    failed: int
