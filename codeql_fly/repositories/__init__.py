"""Repository exports."""

from .alert_repository import AlertRepository
from .base import BaseRepository, CollectionName, SoftDeleteRepository, clamp_page
from .installation_repository import InstallationRepository
from .report_repository import ReportRepository
from .repo_repository import RepoRepository
from .workflow_repository import DuplicateLedgerEntryError, WorkflowLedger

__all__ = [
    "AlertRepository",
    "BaseRepository",
    "CollectionName",
    "DuplicateLedgerEntryError",
    "InstallationRepository",
    "RepoRepository",
    "ReportRepository",
    "SoftDeleteRepository",
    "WorkflowLedger",
    "clamp_page",
]
