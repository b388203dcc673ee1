"""Typed webhook events.

Raw GitHub payloads are parsed once, at the boundary, into one of a closed set
of variants. Handlers only ever see these models.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ValidationError


class MalformedEventError(ValueError):
    """A handled event type arrived without the fields its handler needs."""


class RepoRef(BaseModel):
    repo_id: int
    owner: str
    name: str

    @classmethod
    def from_payload(cls, raw: Dict[str, Any]) -> "RepoRef":
        full_name = raw.get("full_name") or ""
        owner = (raw.get("owner") or {}).get("login") or full_name.split("/")[0]
        return cls(repo_id=raw.get("id"), owner=owner, name=raw.get("name"))


class Account(BaseModel):
    login: str
    id: int
    type: Optional[str] = None


class InstallationCreated(BaseModel):
    kind: Literal["installation.created"] = "installation.created"
    installation_id: int
    account: Account
    repositories: List[RepoRef] = []


class InstallationDeleted(BaseModel):
    kind: Literal["installation.deleted"] = "installation.deleted"
    installation_id: int


class InstallationRepositoriesChanged(BaseModel):
    kind: Literal["installation_repositories"] = "installation_repositories"
    installation_id: int
    account: Optional[Account] = None
    added: List[RepoRef] = []
    removed: List[RepoRef] = []


class ReleasePublished(BaseModel):
    kind: Literal["release.published"] = "release.published"
    installation_id: int
    owner: str
    repo: str
    tag: str
    source_branch: str


class WorkflowRunCompleted(BaseModel):
    kind: Literal["workflow_run.completed"] = "workflow_run.completed"
    installation_id: int
    owner: str
    repo: str
    workflow_name: Optional[str] = None
    conclusion: Optional[str] = None
    head_branch: Optional[str] = None


class IgnoredEvent(BaseModel):
    kind: Literal["ignored"] = "ignored"
    event: Optional[str] = None
    action: Optional[str] = None
    reason: str


WebhookEvent = Union[
    InstallationCreated,
    InstallationDeleted,
    InstallationRepositoriesChanged,
    ReleasePublished,
    WorkflowRunCompleted,
    IgnoredEvent,
]


def _installation_id(payload: Dict[str, Any]) -> Any:
    return (payload.get("installation") or {}).get("id")


def _repository(payload: Dict[str, Any]) -> Dict[str, Any]:
    repository = payload.get("repository") or {}
    return {
        "owner": (repository.get("owner") or {}).get("login"),
        "repo": repository.get("name"),
    }


def _repo_refs(items: Optional[List[Dict[str, Any]]]) -> List[RepoRef]:
    return [RepoRef.from_payload(item) for item in items or []]


def _build(event: str, action: Optional[str], payload: Dict[str, Any]) -> WebhookEvent:
    installation = payload.get("installation") or {}

    if event == "installation" and action == "created":
        return InstallationCreated(
            installation_id=installation.get("id"),
            account=installation.get("account"),
            repositories=_repo_refs(payload.get("repositories")),
        )

    if event == "installation" and action == "deleted":
        return InstallationDeleted(installation_id=installation.get("id"))

    if event == "installation_repositories":
        return InstallationRepositoriesChanged(
            installation_id=installation.get("id"),
            account=installation.get("account"),
            added=_repo_refs(payload.get("repositories_added")),
            removed=_repo_refs(payload.get("repositories_removed")),
        )

    if event == "release" and action == "published":
        release = payload.get("release") or {}
        return ReleasePublished(
            installation_id=_installation_id(payload),
            tag=release.get("tag_name"),
            source_branch=release.get("target_commitish"),
            **_repository(payload),
        )

    if event == "workflow_run" and action == "completed":
        run = payload.get("workflow_run") or {}
        return WorkflowRunCompleted(
            installation_id=_installation_id(payload),
            workflow_name=run.get("name"),
            conclusion=run.get("conclusion"),
            head_branch=run.get("head_branch"),
            **_repository(payload),
        )

    return IgnoredEvent(event=event, action=action, reason="event_not_handled")


def parse_event(event: Optional[str], payload: Any) -> WebhookEvent:
    """Turn an ``X-GitHub-Event`` name and its JSON body into a typed variant."""
    if not isinstance(payload, dict):
        raise MalformedEventError("Webhook payload must be a JSON object")
    if not event:
        return IgnoredEvent(reason="missing_event_header")

    action = payload.get("action")
    try:
        return _build(event, action, payload)
    except (ValidationError, TypeError, KeyError) as exc:
        raise MalformedEventError(f"Malformed {event}.{action} payload: {exc}") from exc
