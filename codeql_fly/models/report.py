from typing import Optional

from .base import PyObjectId, SoftDeleteEntity


class Report(SoftDeleteEntity):
    owner: str
    repo: str
    branch: str
    tag: Optional[str] = None
    content: str
    path: Optional[str] = None
    # Ledger entry this report closed; unset for reports created outside a cycle
    workflow_id: Optional[PyObjectId] = None
