"""Release-to-report lifecycle driven by verified webhook events.

State lives in MongoDB, never in process memory:

* installations / repos – registry rows, soft-deleted rather than removed;
* the workflow ledger – one entry per release scan in flight, keyed by
  ``(owner, repo, temp_branch)`` with a unique index;
* alert snapshot and reports – written once per completed scan cycle.

A release opens a ledger entry; the matching ``workflow_run`` completion
closes it. Anything that fails before the close leaves the entry open, so a
redelivery of the same event can finish the cycle.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
from pymongo.database import Database

from codeql_fly.config import settings
from codeql_fly.models import Report, ScanWorkflow
from codeql_fly.repositories import (
    AlertRepository,
    DuplicateLedgerEntryError,
    InstallationRepository,
    RepoRepository,
    ReportRepository,
    WorkflowLedger,
)
from codeql_fly.services.events import (
    IgnoredEvent,
    InstallationCreated,
    InstallationDeleted,
    InstallationRepositoriesChanged,
    ReleasePublished,
    RepoRef,
    WebhookEvent,
    WorkflowRunCompleted,
)
from codeql_fly.services.github import (
    GitHubGateway,
    GithubConflictError,
    GithubError,
    temp_branch_name,
)
from codeql_fly.services.report_renderer import render_vulnerability_report, to_alert

logger = logging.getLogger(__name__)


def _result(status: str, action: str, **extra: Any) -> Dict[str, Any]:
    return {"status": status, "action": action, **extra}


class EventDispatcher:
    def __init__(
        self,
        gateway: GitHubGateway,
        installations: InstallationRepository,
        repos: RepoRepository,
        ledger: WorkflowLedger,
        alerts: AlertRepository,
        reports: ReportRepository,
    ):
        self.gateway = gateway
        self.installations = installations
        self.repos = repos
        self.ledger = ledger
        self.alerts = alerts
        self.reports = reports
        self._handlers = {
            InstallationCreated: self._on_installation_created,
            InstallationDeleted: self._on_installation_deleted,
            InstallationRepositoriesChanged: self._on_repositories_changed,
            ReleasePublished: self._on_release_published,
            WorkflowRunCompleted: self._on_workflow_run_completed,
            IgnoredEvent: self._on_ignored,
        }

    @classmethod
    def from_db(cls, db: Database, gateway: GitHubGateway) -> "EventDispatcher":
        return cls(
            gateway=gateway,
            installations=InstallationRepository(db),
            repos=RepoRepository(db),
            ledger=WorkflowLedger(db),
            alerts=AlertRepository(db),
            reports=ReportRepository(db),
        )

    async def dispatch(self, event: WebhookEvent) -> Dict[str, Any]:
        handler = self._handlers[type(event)]
        return await handler(event)

    # -- installation lifecycle --------------------------------------------

    async def _onboard_repo(self, installation_id: int, ref: RepoRef):
        """Lazily register a repo and make sure the scanner workflow is on its default branch."""
        repo = self.repos.get_or_create(ref.repo_id, ref.owner, ref.name)
        try:
            await self.gateway.ensure_workflow_on_default_branch(
                repo.owner, repo.name, installation_id
            )
        except (GithubError, httpx.HTTPError) as exc:
            logger.warning(
                "Could not ensure workflow for %s: %s", repo.full_name, exc
            )
            return repo
        self.repos.mark_has_workflow(repo.repo_id)
        return repo

    async def _onboard_repos(self, installation_id: int, refs: List[RepoRef]) -> list:
        return await asyncio.gather(
            *(self._onboard_repo(installation_id, ref) for ref in refs)
        )

    async def _on_installation_created(self, event: InstallationCreated) -> Dict[str, Any]:
        installation = self.installations.upsert_installation(
            event.installation_id, event.account.model_dump()
        )
        logger.info("Stored installation %s", event.account.login)

        repos = await self._onboard_repos(event.installation_id, event.repositories)
        self.installations.add_repos(installation.installation_id, [r.id for r in repos])
        return _result(
            "processed",
            "installation_created",
            installation_id=event.installation_id,
            repos=len(repos),
        )

    async def _on_installation_deleted(self, event: InstallationDeleted) -> Dict[str, Any]:
        found = self.installations.soft_delete(event.installation_id)
        self.gateway.token_provider.clear(event.installation_id)
        if not found:
            logger.warning("Delete for unknown installation %s", event.installation_id)
            return _result(
                "ignored", "installation_deleted", reason="unknown_installation"
            )
        logger.info("Soft-deleted installation %s", event.installation_id)
        return _result(
            "processed", "installation_deleted", installation_id=event.installation_id
        )

    async def _on_repositories_changed(
        self, event: InstallationRepositoriesChanged
    ) -> Dict[str, Any]:
        account = event.account.model_dump() if event.account else {
            "login": f"installation-{event.installation_id}",
            "id": event.installation_id,
        }
        self.installations.ensure_live(event.installation_id, account)

        added = await self._onboard_repos(event.installation_id, event.added)
        self.installations.add_repos(event.installation_id, [r.id for r in added])

        if event.removed:
            removed_ids = self.repos.ids_for_repo_ids(r.repo_id for r in event.removed)
            self.installations.remove_repos(event.installation_id, removed_ids)

        logger.info(
            "Updated repositories for installation %s. Added: %d, Removed: %d",
            event.installation_id,
            len(event.added),
            len(event.removed),
        )
        return _result(
            "processed",
            "installation_repositories",
            added=len(event.added),
            removed=len(event.removed),
        )

    # -- release scan cycle ------------------------------------------------

    async def _dispatch_entry(self, entry: ScanWorkflow) -> bool:
        """Dispatch under the entry's claim; False when another handler holds it."""
        if not self.ledger.claim_dispatch(entry.id):
            return False
        try:
            await self.gateway.dispatch_workflow(
                entry.owner, entry.repo, entry.temp_branch, entry.installation_id
            )
        except Exception:
            self.ledger.release_dispatch(entry.id)
            raise
        self.ledger.mark_dispatched(entry.id)
        return True

    async def _on_release_published(self, event: ReleasePublished) -> Dict[str, Any]:
        owner, repo, tag = event.owner, event.repo, event.tag
        temp_branch = temp_branch_name(tag)
        logger.info("Release %s/%s tag=%s, from %s", owner, repo, tag, event.source_branch)

        existing = self.ledger.find_by_temp_branch(owner, repo, temp_branch)
        if existing is not None:
            return await self._absorb_duplicate_release(existing)

        try:
            entry = self.ledger.open(
                owner=owner,
                repo=repo,
                installation_id=event.installation_id,
                release_tag=tag,
                source_branch=event.source_branch,
                temp_branch=temp_branch,
            )
        except DuplicateLedgerEntryError:
            # A concurrent delivery of the same release won the insert
            logger.info("Release %s/%s@%s already in flight", owner, repo, tag)
            return _result("duplicate", "release_published", temp_branch=temp_branch)

        try:
            await self.gateway.create_branch_from_tag(owner, repo, tag, event.installation_id)
            await self._provision_workflow(entry)
        except Exception:
            # Drop the claim so a redelivery provisions from scratch
            self.ledger.close(entry.id)
            raise
        self.ledger.mark_provisioned(entry.id)

        if not await self._dispatch_entry(entry):
            return _result("duplicate", "release_published", temp_branch=temp_branch)
        return _result("processed", "release_published", temp_branch=temp_branch)

    async def _provision_workflow(self, entry: ScanWorkflow) -> None:
        try:
            await self.gateway.upsert_workflow_definition(
                entry.owner,
                entry.repo,
                entry.temp_branch,
                entry.release_tag,
                entry.installation_id,
            )
        except GithubConflictError:
            # Another writer created the file first; fine as long as we still own the entry
            current = self.ledger.find_by_temp_branch(
                entry.owner, entry.repo, entry.temp_branch
            )
            if current is None or current.id != entry.id:
                raise
            logger.info(
                "Workflow file on %s/%s@%s written concurrently",
                entry.owner,
                entry.repo,
                entry.temp_branch,
            )

    async def _absorb_duplicate_release(self, entry: ScanWorkflow) -> Dict[str, Any]:
        if entry.provisioned_at is not None and entry.dispatched_at is None:
            if await self._dispatch_entry(entry):
                logger.info(
                    "Retried dispatch for %s/%s@%s",
                    entry.owner,
                    entry.repo,
                    entry.temp_branch,
                )
                return _result(
                    "processed", "release_redispatched", temp_branch=entry.temp_branch
                )
        logger.info(
            "Duplicate release delivery for %s/%s@%s ignored",
            entry.owner,
            entry.repo,
            entry.temp_branch,
        )
        return _result("duplicate", "release_published", temp_branch=entry.temp_branch)

    async def _on_workflow_run_completed(
        self, event: WorkflowRunCompleted
    ) -> Dict[str, Any]:
        if event.workflow_name != settings.SCANNER_WORKFLOW_NAME:
            return _result("ignored", "workflow_run_completed", reason="other_workflow")
        if event.conclusion != "success" or not event.head_branch:
            logger.info(
                "Scanner run on %s/%s@%s concluded %s",
                event.owner,
                event.repo,
                event.head_branch,
                event.conclusion,
            )
            return _result("ignored", "workflow_run_completed", reason="not_successful")

        entry = self.ledger.find_by_temp_branch(event.owner, event.repo, event.head_branch)
        if entry is None:
            logger.warning(
                "No matching in-flight workflow for %s/%s@%s",
                event.owner,
                event.repo,
                event.head_branch,
            )
            return _result("ignored", "workflow_run_completed", reason="no_ledger_entry")

        report = await self._complete_cycle(entry)
        return _result(
            "processed",
            "workflow_run_completed",
            report_id=str(report.id),
            path=report.path,
        )

    async def _complete_cycle(self, entry: ScanWorkflow) -> Report:
        owner, repo = entry.owner, entry.repo
        full_name = f"{owner}/{repo}"
        tag: Optional[str] = entry.release_tag or None
        logger.info("Workflow success on %s@%s", full_name, entry.temp_branch)

        raw_alerts = await self.gateway.fetch_scan_alerts(
            owner, repo, entry.temp_branch, entry.installation_id
        )
        content = render_vulnerability_report(raw_alerts, entry.source_branch, tag)
        path = await self.gateway.push_report_file(
            owner, repo, entry.source_branch, content, entry.installation_id, tag
        )

        self.alerts.replace_snapshot(
            full_name, [to_alert(alert, full_name) for alert in raw_alerts]
        )
        report = self.reports.record(
            Report(
                owner=owner,
                repo=repo,
                branch=entry.source_branch,
                tag=tag,
                content=content,
                path=path,
                workflow_id=entry.id,
            )
        )

        try:
            await self.gateway.delete_branch(
                owner, repo, entry.temp_branch, entry.installation_id
            )
        except GithubError as exc:
            logger.warning(
                "Could not delete temp branch %s@%s: %s", full_name, entry.temp_branch, exc
            )

        self.ledger.close(entry.id)
        logger.info("Report pushed for %s@%s", full_name, entry.source_branch)
        return report

    async def _on_ignored(self, event: IgnoredEvent) -> Dict[str, Any]:
        logger.debug("Ignoring %s.%s: %s", event.event, event.action, event.reason)
        return _result("ignored", event.event or "unknown", reason=event.reason)
