from typing import Iterable, List

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from codeql_fly.models import Repo, utcnow
from .base import LIVE, CollectionName, SoftDeleteRepository


class RepoRepository(SoftDeleteRepository[Repo]):
    def __init__(self, db: Database):
        super().__init__(db, CollectionName.REPOS, Repo)

    def get_or_create(self, repo_id: int, owner: str, name: str) -> Repo:
        """Lazily create the repo the first time an installation references it."""
        now = utcnow()
        doc = self.collection.find_one_and_update(
            {"repo_id": repo_id},
            {
                "$setOnInsert": {
                    "repo_id": repo_id,
                    "owner": owner,
                    "name": name,
                    "has_workflow": False,
                    "deleted_at": None,
                    "created_at": now,
                }
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(doc)

    def upsert_repo(self, repo_id: int, owner: str, name: str) -> Repo:
        now = utcnow()
        doc = self.collection.find_one_and_update(
            {"repo_id": repo_id},
            {
                "$set": {
                    "owner": owner,
                    "name": name,
                    "deleted_at": None,
                    "updated_at": now,
                },
                "$setOnInsert": {
                    "repo_id": repo_id,
                    "has_workflow": False,
                    "created_at": now,
                },
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(doc)

    def mark_has_workflow(self, repo_id: int) -> None:
        self.collection.update_one(
            {"repo_id": repo_id},
            {"$set": {"has_workflow": True, "updated_at": utcnow()}},
        )

    def mark_has_workflow_by_name(self, owner: str, name: str) -> None:
        """For callers that only know the current full name of a live repo."""
        self.collection.update_one(
            {"owner": owner, "name": name, **LIVE},
            {"$set": {"has_workflow": True, "updated_at": utcnow()}},
        )

    def ids_for_repo_ids(self, repo_ids: Iterable[int]) -> List[ObjectId]:
        return self.collection.distinct("_id", {"repo_id": {"$in": list(repo_ids)}})

    def find_live_by_ids(self, ids: Iterable[ObjectId]) -> List[Repo]:
        return self.find_many({"_id": {"$in": list(ids)}, **LIVE})
