import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from codeql_fly.api.deps import get_repository_service
from codeql_fly.dtos import EnableRepoRequest, EnableRepoResponse, TriggerScanRequest
from codeql_fly.services.repo_service import RepositoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/repos", tags=["Repositories"])


def _failure(exc: Exception) -> JSONResponse:
    return JSONResponse(
        {"error": str(exc)}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


@router.post("/enable", response_model=EnableRepoResponse)
async def enable_repository(
    payload: EnableRepoRequest,
    service: RepositoryService = Depends(get_repository_service),
):
    """Provision the scanner workflow on a temp branch derived from a tag or the default branch."""
    try:
        temp_branch = await service.enable(
            payload.owner, payload.repo, payload.installation_id, payload.tag
        )
    except Exception as exc:
        logger.exception("Enable failed for %s/%s", payload.owner, payload.repo)
        return _failure(exc)
    return EnableRepoResponse(temp_branch=temp_branch)


@router.post("/trigger-scan")
async def trigger_scan(
    payload: TriggerScanRequest,
    service: RepositoryService = Depends(get_repository_service),
):
    try:
        await service.trigger_scan(
            payload.owner, payload.repo, payload.branch, payload.installation_id
        )
    except Exception as exc:
        logger.exception(
            "Trigger failed for %s/%s@%s", payload.owner, payload.repo, payload.branch
        )
        return _failure(exc)
    return {"ok": True}
