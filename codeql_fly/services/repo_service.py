"""Operator-triggered actions: enable scanning, trigger a scan, resync an installation."""

import logging
from typing import Any, Dict, Optional

from pymongo.database import Database

from codeql_fly.config import settings
from codeql_fly.repositories import (
    DuplicateLedgerEntryError,
    InstallationRepository,
    RepoRepository,
    WorkflowLedger,
)
from codeql_fly.services.github import GitHubGateway, GithubConflictError, temp_branch_name
from codeql_fly.services.github.github_client import iter_repo_refs

logger = logging.getLogger(__name__)


class RepositoryService:
    def __init__(self, db: Database, gateway: GitHubGateway):
        self.gateway = gateway
        self.installations = InstallationRepository(db)
        self.repos = RepoRepository(db)
        self.ledger = WorkflowLedger(db)

    async def enable(
        self, owner: str, repo: str, installation_id: int, tag: Optional[str] = None
    ) -> str:
        """Provision the scanner workflow on a temp branch cut from ``tag`` or the default source branch."""
        branch_base = tag or settings.DEFAULT_SOURCE_BRANCH
        if tag:
            temp_branch = await self.gateway.create_branch_from_tag(
                owner, repo, tag, installation_id
            )
            source_branch = await self.gateway.get_default_branch(
                owner, repo, installation_id
            )
        else:
            temp_branch = await self.gateway.create_branch_from_ref(
                owner, repo, branch_base, temp_branch_name(branch_base), installation_id
            )
            source_branch = branch_base

        try:
            await self.gateway.upsert_workflow_definition(
                owner, repo, temp_branch, branch_base, installation_id
            )
        except GithubConflictError:
            # A release delivery for the same branch wrote the file first
            if self.ledger.find_by_temp_branch(owner, repo, temp_branch) is None:
                raise
            logger.info("Workflow on %s/%s@%s already written", owner, repo, temp_branch)

        try:
            self.ledger.open(
                owner=owner,
                repo=repo,
                installation_id=installation_id,
                release_tag=tag or "",
                source_branch=source_branch,
                temp_branch=temp_branch,
                provisioned=True,
            )
        except DuplicateLedgerEntryError:
            logger.info("%s/%s@%s already enabled", owner, repo, temp_branch)

        self.repos.mark_has_workflow_by_name(owner, repo)
        return temp_branch

    async def trigger_scan(
        self, owner: str, repo: str, branch: str, installation_id: int
    ) -> None:
        await self.gateway.dispatch_workflow(owner, repo, branch, installation_id)
        entry = self.ledger.find_by_temp_branch(owner, repo, branch)
        if entry is not None:
            self.ledger.mark_dispatched(entry.id)

    async def sync_installation(self, installation_id: int) -> Dict[str, Any]:
        """Replace an installation's repo set with what GitHub currently grants."""
        remote = await self.gateway.list_installation_repositories(installation_id)
        existing = self.installations.find_by_installation_id(installation_id)
        owner_login = remote[0]["owner"]["login"] if remote else None
        account = (
            existing.account.model_dump()
            if existing
            else {
                "login": owner_login or f"installation-{installation_id}",
                "id": installation_id,
            }
        )
        self.installations.upsert_installation(installation_id, account)

        repo_ids = []
        for ref in iter_repo_refs(remote):
            repo = self.repos.upsert_repo(ref["repo_id"], ref["owner"], ref["name"])
            repo_ids.append(repo.id)
        self.installations.replace_repos(installation_id, repo_ids)

        logger.info(
            "Synced %d repositories for installation %s", len(repo_ids), installation_id
        )
        return {"ok": True, "installed_count": len(repo_ids)}
