"""Ledger entry for a release scan that is in flight on a temporary branch."""

from datetime import datetime
from typing import Optional

from .base import BaseEntity


class ScanWorkflow(BaseEntity):
    owner: str
    repo: str
    installation_id: int
    release_tag: str
    source_branch: str
    temp_branch: str
    # Set once the temp branch and workflow file exist on the remote
    provisioned_at: Optional[datetime] = None
    # Held by the one handler currently dispatching this entry
    dispatch_claimed_at: Optional[datetime] = None
    dispatched_at: Optional[datetime] = None
