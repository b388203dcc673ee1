"""Response DTOs for the listing endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from codeql_fly.models import PyObjectIdStr
from .base import BaseResponse


class RepoResponse(BaseResponse):
    repo_id: int
    owner: str
    name: str
    has_workflow: bool = False
    deleted_at: Optional[datetime] = None


class InstallationAccountResponse(BaseModel):
    login: str
    id: int
    type: Optional[str] = None


class InstallationResponse(BaseResponse):
    installation_id: int
    account: InstallationAccountResponse
    repos: List[RepoResponse] = []
    deleted_at: Optional[datetime] = None


class AlertResponse(BaseResponse):
    alert_id: int
    repo: str
    severity: str
    file: str = ""
    message: str = ""
    rule_id: str = ""
    state: str = ""
    html_url: str = ""
    deleted_at: Optional[datetime] = None


class AlertListResponse(BaseModel):
    alerts: List[AlertResponse]
    page: int
    limit: int


class ReportResponse(BaseResponse):
    owner: str
    repo: str
    branch: str
    tag: Optional[str] = None
    content: str
    path: Optional[str] = None
    workflow_id: Optional[PyObjectIdStr] = None
    deleted_at: Optional[datetime] = None


class ReportListResponse(BaseModel):
    reports: List[ReportResponse]
    page: int
    limit: int
