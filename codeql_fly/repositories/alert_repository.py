from typing import List

from pymongo import UpdateOne
from pymongo.database import Database

from codeql_fly.models import Alert, utcnow
from .base import LIVE, CollectionName, SoftDeleteRepository


class AlertRepository(SoftDeleteRepository[Alert]):
    def __init__(self, db: Database):
        super().__init__(db, CollectionName.ALERTS, Alert)

    def replace_snapshot(self, repo_full_name: str, alerts: List[Alert]) -> int:
        """Supersede the live snapshot for a repo with the alerts of the latest scan.

        Previous live rows are soft-deleted first; the new batch is upserted by
        ``(repo, alert_id)`` so an alert seen again is revived rather than duplicated.
        """
        now = utcnow()
        self.collection.update_many(
            {"repo": repo_full_name, **LIVE},
            {"$set": {"deleted_at": now}},
        )
        if not alerts:
            return 0

        operations = []
        for alert in alerts:
            doc = alert.to_mongo()
            created_at = doc.pop("created_at", now)
            doc.update({"repo": repo_full_name, "deleted_at": None, "updated_at": now})
            operations.append(
                UpdateOne(
                    {"repo": repo_full_name, "alert_id": alert.alert_id},
                    {"$set": doc, "$setOnInsert": {"created_at": created_at}},
                    upsert=True,
                )
            )
        result = self.collection.bulk_write(operations, ordered=False)
        return result.upserted_count + result.modified_count

    def list_for_repo(self, repo_full_name: str) -> List[Alert]:
        return self.find_live({"repo": repo_full_name}, sort=[("created_at", -1)])
