from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pymongo.database import Database

from codeql_fly.api.deps import Pagination, get_db
from codeql_fly.dtos import ReportListResponse, ReportResponse
from codeql_fly.repositories import ReportRepository

router = APIRouter(prefix="/reports", tags=["Reports"])


def _to_response(report) -> ReportResponse:
    return ReportResponse.model_validate(report.model_dump(by_alias=True))


@router.get("", response_model=ReportListResponse, response_model_by_alias=False)
def list_reports(
    pagination: Pagination = Depends(Pagination),
    db: Database = Depends(get_db),
):
    reports = ReportRepository(db).paginate_live(pagination.page, pagination.limit)
    return ReportListResponse(
        reports=[_to_response(r) for r in reports],
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get("/{report_id}", response_model=ReportResponse, response_model_by_alias=False)
def get_report(report_id: str, db: Database = Depends(get_db)):
    report = ReportRepository(db).find_live_by_id(report_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    return _to_response(report)


@router.get(
    "/{owner}/{repo}",
    response_model=List[ReportResponse],
    response_model_by_alias=False,
)
def list_repo_reports(owner: str, repo: str, db: Database = Depends(get_db)):
    return [_to_response(r) for r in ReportRepository(db).list_for_repo(owner, repo)]
