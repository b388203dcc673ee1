"""GitHub App installation entity."""

from typing import List, Optional

from pydantic import BaseModel, Field

from .base import PyObjectId, SoftDeleteEntity


class InstallationAccount(BaseModel):
    login: str
    id: int
    type: Optional[str] = None  # "User" or "Organization"


class Installation(SoftDeleteEntity):
    installation_id: int
    account: InstallationAccount
    repos: List[PyObjectId] = Field(default_factory=list)
