from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EnableRepoRequest(BaseModel):
    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)
    installation_id: int = Field(..., alias="installationId", gt=0)
    tag: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class EnableRepoResponse(BaseModel):
    ok: bool = True
    temp_branch: str = Field(..., serialization_alias="tempBranch")


class TriggerScanRequest(BaseModel):
    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)
    branch: str = Field(..., min_length=1)
    installation_id: int = Field(..., alias="installationId", gt=0)

    model_config = ConfigDict(populate_by_name=True)
