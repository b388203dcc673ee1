"""Database entity models - represents the actual structure stored in MongoDB"""

from .alert import Alert, Severity
from .base import BaseEntity, PyObjectId, PyObjectIdStr, SoftDeleteEntity, utcnow
from .installation import Installation, InstallationAccount
from .report import Report
from .repo import Repo
from .workflow import ScanWorkflow

__all__ = [
    "Alert",
    "BaseEntity",
    "Installation",
    "InstallationAccount",
    "PyObjectId",
    "PyObjectIdStr",
    "Repo",
    "Report",
    "ScanWorkflow",
    "Severity",
    "SoftDeleteEntity",
    "utcnow",
]
