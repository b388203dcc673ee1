from typing import List

from pymongo import ReturnDocument
from pymongo.database import Database

from codeql_fly.models import Report
from .base import CollectionName, SoftDeleteRepository


class ReportRepository(SoftDeleteRepository[Report]):
    def __init__(self, db: Database):
        super().__init__(db, CollectionName.REPORTS, Report)

    def record(self, report: Report) -> Report:
        """Persist a report; a report tied to a ledger entry is written only once."""
        if report.workflow_id is None:
            return self.insert_one(report)
        doc = self.collection.find_one_and_update(
            {"workflow_id": report.workflow_id},
            {"$setOnInsert": report.to_mongo()},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(doc)

    def list_for_repo(self, owner: str, repo: str) -> List[Report]:
        return self.find_live({"owner": owner, "repo": repo}, sort=[("created_at", -1)])
