"""Workflow ledger: durable record of release scans in flight.

An entry maps ``(owner, repo, temp_branch)`` to the release that created it.
A unique index on that triple makes a second ``open`` for the same cycle fail,
which is how duplicate release deliveries are absorbed. Entries are removed
with ``close`` once the completion event has been fully handled.
"""

import logging
from typing import Optional, Union

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from codeql_fly.models import ScanWorkflow, utcnow
from .base import BaseRepository, CollectionName

logger = logging.getLogger(__name__)


class DuplicateLedgerEntryError(Exception):
    """A live entry already exists for this temporary branch."""

    def __init__(self, owner: str, repo: str, temp_branch: str):
        super().__init__(f"Ledger entry already open for {owner}/{repo}@{temp_branch}")
        self.owner = owner
        self.repo = repo
        self.temp_branch = temp_branch


class WorkflowLedger(BaseRepository[ScanWorkflow]):
    def __init__(self, db: Database):
        super().__init__(db, CollectionName.WORKFLOWS, ScanWorkflow)

    def open(
        self,
        owner: str,
        repo: str,
        installation_id: int,
        release_tag: str,
        source_branch: str,
        temp_branch: str,
        provisioned: bool = False,
    ) -> ScanWorkflow:
        """Claim the temp branch for one release cycle.

        Runs before anything is created remotely; concurrent deliveries of one
        release collide on the unique index here.
        """
        entry = ScanWorkflow(
            owner=owner,
            repo=repo,
            installation_id=installation_id,
            release_tag=release_tag,
            source_branch=source_branch,
            temp_branch=temp_branch,
            provisioned_at=utcnow() if provisioned else None,
        )
        try:
            created = self.insert_one(entry)
        except DuplicateKeyError as exc:
            raise DuplicateLedgerEntryError(owner, repo, temp_branch) from exc
        logger.info(
            "Opened ledger entry %s for %s/%s@%s (tag=%s)",
            created.id,
            owner,
            repo,
            temp_branch,
            release_tag,
        )
        return created

    def find_by_temp_branch(
        self, owner: str, repo: str, temp_branch: str
    ) -> Optional[ScanWorkflow]:
        return self.find_one({"owner": owner, "repo": repo, "temp_branch": temp_branch})

    def mark_provisioned(self, entry_id: Union[str, ObjectId]) -> None:
        self.update(entry_id, {"provisioned_at": utcnow()})

    def claim_dispatch(self, entry_id: Union[str, ObjectId]) -> bool:
        """Atomically take the right to dispatch; False if dispatched or claimed."""
        identifier = self._to_object_id(entry_id)
        if identifier is None:
            return False
        result = self.collection.update_one(
            {"_id": identifier, "dispatch_claimed_at": None, "dispatched_at": None},
            {"$set": {"dispatch_claimed_at": utcnow()}},
        )
        return result.modified_count == 1

    def release_dispatch(self, entry_id: Union[str, ObjectId]) -> None:
        self.update(entry_id, {"dispatch_claimed_at": None})

    def mark_dispatched(self, entry_id: Union[str, ObjectId]) -> None:
        self.update(entry_id, {"dispatched_at": utcnow()})

    def close(self, entry_id: Union[str, ObjectId]) -> bool:
        closed = self.delete(entry_id)
        if closed:
            logger.info("Closed ledger entry %s", entry_id)
        return closed
