from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pymongo.database import Database

from codeql_fly.api.deps import Pagination, get_db
from codeql_fly.dtos import AlertListResponse, AlertResponse
from codeql_fly.repositories import AlertRepository

router = APIRouter(prefix="/alerts", tags=["Alerts"])


def _to_response(alert) -> AlertResponse:
    return AlertResponse.model_validate(alert.model_dump(by_alias=True))


@router.get("", response_model=AlertListResponse, response_model_by_alias=False)
def list_alerts(
    pagination: Pagination = Depends(Pagination),
    db: Database = Depends(get_db),
):
    alerts = AlertRepository(db).paginate_live(pagination.page, pagination.limit)
    return AlertListResponse(
        alerts=[_to_response(a) for a in alerts],
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get("/{alert_id}", response_model=AlertResponse, response_model_by_alias=False)
def get_alert(alert_id: str, db: Database = Depends(get_db)):
    alert = AlertRepository(db).find_live_by_id(alert_id)
    if alert is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    return _to_response(alert)


@router.get(
    "/{owner}/{repo}",
    response_model=List[AlertResponse],
    response_model_by_alias=False,
)
def list_repo_alerts(owner: str, repo: str, db: Database = Depends(get_db)):
    return [_to_response(a) for a in AlertRepository(db).list_for_repo(f"{owner}/{repo}")]
