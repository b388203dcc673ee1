import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from fastapi.responses import JSONResponse
from pymongo.database import Database

from codeql_fly.api.deps import get_db, get_repository_service
from codeql_fly.dtos import InstallationResponse, RepoResponse
from codeql_fly.repositories import InstallationRepository, RepoRepository
from codeql_fly.services.repo_service import RepositoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/installations", tags=["Installations"])


def _repo_response(repo) -> RepoResponse:
    return RepoResponse.model_validate(repo.model_dump(by_alias=True))


@router.get("", response_model=List[InstallationResponse], response_model_by_alias=False)
def list_installations(db: Database = Depends(get_db)):
    """List live installations with their live repos."""
    installations = InstallationRepository(db)
    repos = RepoRepository(db)
    result = []
    for installation in installations.list_live():
        doc = installation.model_dump(by_alias=True)
        doc["repos"] = [
            _repo_response(r) for r in repos.find_live_by_ids(installation.repos)
        ]
        result.append(InstallationResponse.model_validate(doc))
    return result


@router.get(
    "/{installation_id}/repos",
    response_model=List[RepoResponse],
    response_model_by_alias=False,
)
def list_installation_repos(
    installation_id: str = Path(..., description="Installation id (Mongo ObjectId)"),
    db: Database = Depends(get_db),
):
    installation = InstallationRepository(db).find_live_by_id(installation_id)
    if installation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Installation not found"
        )
    repos = RepoRepository(db).find_live_by_ids(installation.repos)
    return [_repo_response(r) for r in repos]


@router.post("/sync/{installation_id}")
async def sync_installation(
    installation_id: int,
    service: RepositoryService = Depends(get_repository_service),
):
    """Re-sync the repos of an installation from GitHub."""
    if installation_id <= 0:
        return JSONResponse(
            {"error": "invalid installation id"}, status_code=status.HTTP_400_BAD_REQUEST
        )
    try:
        return await service.sync_installation(installation_id)
    except Exception as exc:
        logger.exception("Sync failed for installation %s", installation_id)
        return JSONResponse(
            {"error": str(exc)}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
