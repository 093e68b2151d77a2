from labelsync.http.requests.schemas import (
    SyncOrdersRequest,
    SyncResultResponse,
    ResyncResponse,
    SyncJobResponse,
    SyncJobListResponse,
    UpdateProductionStatusRequest,
    MarketplaceCredentialsRequest,
    REQUIRED_CREDENTIAL_FIELDS,
    GenerateLabelsRequest,
    LabelJobResult,
    GenerateLabelsResponse,
)
