from .base import BaseResponse
from .listing import (
    AlertListResponse,
    AlertResponse,
    InstallationResponse,
    ReportListResponse,
    ReportResponse,
    RepoResponse,
)
from .repos import EnableRepoRequest, EnableRepoResponse, TriggerScanRequest

__all__ = [
    "AlertListResponse",
    "AlertResponse",
    "BaseResponse",
    "EnableRepoRequest",
    "EnableRepoResponse",
    "InstallationResponse",
    "RepoResponse",
    "ReportListResponse",
    "ReportResponse",
    "TriggerScanRequest",
]
