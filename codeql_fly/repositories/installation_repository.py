"""Registry of GitHub App installations."""

from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from codeql_fly.models import Installation, utcnow
from .base import LIVE, CollectionName, SoftDeleteRepository


class InstallationRepository(SoftDeleteRepository[Installation]):
    def __init__(self, db: Database):
        super().__init__(db, CollectionName.INSTALLATIONS, Installation)

    def find_by_installation_id(self, installation_id: int) -> Optional[Installation]:
        return self.find_one({"installation_id": installation_id})

    def upsert_installation(
        self, installation_id: int, account: Dict[str, Any]
    ) -> Installation:
        """Create or revive an installation, clearing any soft-delete marker."""
        now = utcnow()
        doc = self.collection.find_one_and_update(
            {"installation_id": installation_id},
            {
                "$set": {
                    "installation_id": installation_id,
                    "account": account,
                    "deleted_at": None,
                    "updated_at": now,
                },
                "$setOnInsert": {"created_at": now, "repos": []},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(doc)

    def ensure_live(self, installation_id: int, account: Dict[str, Any]) -> None:
        """Upsert without touching an existing account record."""
        now = utcnow()
        self.collection.update_one(
            {"installation_id": installation_id},
            {
                "$set": {"deleted_at": None, "updated_at": now},
                "$setOnInsert": {
                    "installation_id": installation_id,
                    "account": account,
                    "created_at": now,
                    "repos": [],
                },
            },
            upsert=True,
        )

    def soft_delete(self, installation_id: int) -> bool:
        result = self.collection.update_one(
            {"installation_id": installation_id},
            {"$set": {"deleted_at": utcnow()}},
        )
        return result.matched_count > 0

    def add_repos(self, installation_id: int, repo_ids: Iterable[ObjectId]) -> None:
        ids = list(repo_ids)
        if not ids:
            return
        self.collection.update_one(
            {"installation_id": installation_id},
            {"$addToSet": {"repos": {"$each": ids}}},
        )

    def remove_repos(self, installation_id: int, repo_ids: Iterable[ObjectId]) -> None:
        ids = list(repo_ids)
        if not ids:
            return
        self.collection.update_one(
            {"installation_id": installation_id},
            {"$pull": {"repos": {"$in": ids}}},
        )

    def replace_repos(self, installation_id: int, repo_ids: Iterable[ObjectId]) -> None:
        self.collection.update_one(
            {"installation_id": installation_id},
            {"$set": {"repos": list(repo_ids), "updated_at": utcnow()}},
        )

    def list_live(self) -> List[Installation]:
        return self.find_many(dict(LIVE), sort=[("created_at", -1)])
