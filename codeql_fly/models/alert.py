from enum import Enum

from pydantic import ConfigDict

from .base import SoftDeleteEntity


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Alert(SoftDeleteEntity):
    alert_id: int
    repo: str  # full name, "owner/repo"
    severity: Severity
    file: str = ""
    message: str = ""
    rule_id: str = ""
    state: str = ""
    html_url: str = ""

    model_config = ConfigDict(use_enum_values=True)
