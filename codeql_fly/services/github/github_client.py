"""Async gateway to the GitHub REST API.

Every remote interaction of the service goes through ``GitHubGateway``. Each
public operation mints its own installation token; nothing is shared between
operations unless the token provider was built with a cache.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional
from urllib.parse import quote

import httpx

from codeql_fly.config import settings
from codeql_fly.utils.retry import retry
from .exceptions import (
    GithubApiError,
    GithubConflictError,
    GithubNotFoundError,
    GithubRateLimitError,
)
from .github_auth import InstallationTokenProvider, build_token_provider
from .workflow_template import render_workflow

logger = logging.getLogger(__name__)

API_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
}
REF_EXISTS = "reference already exists"
MAX_TAG_DEPTH = 5


def temp_branch_name(tag: str) -> str:
    """Temporary scan branch for a release tag, e.g. ``codeql-v1.2.3``."""
    return f"{settings.TEMP_BRANCH_PREFIX}{tag}"


def report_path(tag: Optional[str] = None) -> str:
    suffix = tag or str(int(time.time() * 1000))
    return f"{settings.REPORTS_DIR}/vulnerability-report-{suffix}.md"


def _q(value: str) -> str:
    return quote(value, safe="/")


def _next_link(response: httpx.Response) -> Optional[str]:
    link_header = response.headers.get("Link")
    if not link_header:
        return None
    for part in link_header.split(","):
        segment = part.strip()
        if segment.endswith('rel="next"'):
            return segment[segment.find("<") + 1 : segment.find(">")]
    return None


def _raise_for_status(response: httpx.Response, message: str) -> None:
    if response.is_success:
        return
    status = response.status_code
    body = response.text
    if status in (403, 429) and (
        "rate limit" in body.lower() or response.headers.get("X-RateLimit-Remaining") == "0"
    ):
        raise GithubRateLimitError(
            message, status, body, retry_after=_retry_after(response)
        )
    if status == 404:
        raise GithubNotFoundError(message, status, body)
    if status in (409, 422):
        raise GithubConflictError(message, status, body)
    raise GithubApiError(message, status, body)


def _retry_after(response: httpx.Response) -> float:
    retry_after_header = response.headers.get("Retry-After")
    reset_header = response.headers.get("X-RateLimit-Reset")
    if retry_after_header:
        try:
            return float(retry_after_header)
        except ValueError:
            pass
    elif reset_header:
        try:
            now_epoch = datetime.now(timezone.utc).timestamp()
            return max(float(reset_header) - now_epoch, 1.0)
        except ValueError:
            pass
    return 60.0


class GitHubGateway:
    def __init__(
        self,
        token_provider: Optional[InstallationTokenProvider] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        dispatch_delay: Optional[float] = None,
        poll_attempts: Optional[int] = None,
        poll_interval: Optional[float] = None,
        dispatch_retries: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.token_provider = token_provider or build_token_provider()
        self._client = httpx.AsyncClient(
            base_url=(api_url or settings.GITHUB_API_URL).rstrip("/"),
            timeout=settings.GITHUB_HTTP_TIMEOUT,
            transport=transport,
        )
        self.dispatch_delay = (
            settings.DISPATCH_DELAY_SECONDS if dispatch_delay is None else dispatch_delay
        )
        self.poll_attempts = (
            settings.DISPATCH_POLL_ATTEMPTS if poll_attempts is None else poll_attempts
        )
        self.poll_interval = (
            settings.DISPATCH_POLL_INTERVAL_SECONDS
            if poll_interval is None
            else poll_interval
        )
        self.dispatch_retries = (
            settings.DISPATCH_RETRIES if dispatch_retries is None else dispatch_retries
        )
        self._sleep = sleep

    # -- plumbing ---------------------------------------------------------

    async def _token(self, installation_id: int) -> str:
        return await self.token_provider.get_token(self._client, installation_id)

    def _headers(self, token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}", **API_HEADERS}

    async def _request(
        self, method: str, path: str, token: str, **kwargs: Any
    ) -> httpx.Response:
        return await self._client.request(
            method, path, headers=self._headers(token), **kwargs
        )

    async def _json(
        self, method: str, path: str, token: str, message: str, **kwargs: Any
    ) -> Any:
        response = await self._request(method, path, token, **kwargs)
        _raise_for_status(response, message)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def _paginate(
        self, path: str, token: str, params: Dict[str, Any], message: str, key: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        url: Optional[str] = path
        query: Optional[Dict[str, Any]] = params
        while url:
            response = await self._request("GET", url, token, params=query)
            _raise_for_status(response, message)
            data = response.json()
            chunk = data.get(key, []) if key else data
            if isinstance(chunk, list):
                items.extend(chunk)
            url = _next_link(response)
            # The next link already carries the query string
            query = None
        return items

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # -- refs and branches -------------------------------------------------

    async def _resolve_ref_sha(self, owner: str, repo: str, ref: str, token: str) -> str:
        data = await self._json(
            "GET",
            f"/repos/{owner}/{repo}/git/ref/{_q(ref)}",
            token,
            f"Failed to resolve {ref}",
        )
        obj = (data or {}).get("object") or {}
        # Annotated tags point at a tag object, not at the commit
        for _ in range(MAX_TAG_DEPTH):
            if obj.get("type") != "tag":
                break
            tag_obj = await self._json(
                "GET",
                f"/repos/{owner}/{repo}/git/tags/{obj.get('sha')}",
                token,
                f"Failed to dereference annotated tag {ref}",
            )
            obj = (tag_obj or {}).get("object") or {}
        sha = obj.get("sha")
        if not sha:
            raise GithubApiError(f"No SHA for {ref}", 200, "")
        return sha

    async def _create_branch(
        self, owner: str, repo: str, branch: str, sha: str, token: str
    ) -> bool:
        """Create ``branch`` at ``sha``; an existing branch counts as success."""
        try:
            await self._json(
                "POST",
                f"/repos/{owner}/{repo}/git/refs",
                token,
                f"Failed to create branch {branch}",
                json={"ref": f"refs/heads/{branch}", "sha": sha},
            )
        except GithubConflictError as exc:
            if REF_EXISTS not in exc.body.lower():
                raise
            logger.info("Branch %s/%s@%s already exists", owner, repo, branch)
            return False
        logger.info("Created branch %s/%s@%s at %s", owner, repo, branch, sha)
        return True

    async def create_branch_from_tag(
        self, owner: str, repo: str, tag: str, installation_id: int
    ) -> str:
        """Resolve ``tag`` to a commit and branch ``codeql-<tag>`` from it."""
        token = await self._token(installation_id)
        temp_branch = temp_branch_name(tag)
        sha = await self._resolve_ref_sha(owner, repo, f"tags/{tag}", token)
        await self._create_branch(owner, repo, temp_branch, sha, token)
        return temp_branch

    async def create_branch_from_ref(
        self,
        owner: str,
        repo: str,
        source_branch: str,
        temp_branch: str,
        installation_id: int,
    ) -> str:
        token = await self._token(installation_id)
        sha = await self._resolve_ref_sha(owner, repo, f"heads/{source_branch}", token)
        await self._create_branch(owner, repo, temp_branch, sha, token)
        return temp_branch

    async def delete_branch(
        self, owner: str, repo: str, branch: str, installation_id: int
    ) -> None:
        token = await self._token(installation_id)
        await self._json(
            "DELETE",
            f"/repos/{owner}/{repo}/git/refs/heads/{_q(branch)}",
            token,
            f"Failed to delete branch {branch}",
        )
        logger.info("Deleted branch %s/%s@%s", owner, repo, branch)

    async def get_default_branch(self, owner: str, repo: str, installation_id: int) -> str:
        token = await self._token(installation_id)
        data = await self._json(
            "GET", f"/repos/{owner}/{repo}", token, "Failed to get repo info"
        )
        return (data or {}).get("default_branch") or settings.DEFAULT_SOURCE_BRANCH

    # -- file contents -----------------------------------------------------

    async def _file_sha(
        self, owner: str, repo: str, path: str, branch: str, token: str
    ) -> Optional[str]:
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/contents/{_q(path)}",
            token,
            params={"ref": branch},
        )
        if response.status_code == 404:
            return None
        _raise_for_status(response, f"Failed to read {path}")
        return response.json().get("sha")

    async def _upsert_file(
        self,
        owner: str,
        repo: str,
        path: str,
        branch: str,
        content: str,
        message: str,
        token: str,
    ) -> Dict[str, Any]:
        """Write a file, passing the current blob sha when it already exists."""
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        sha = await self._file_sha(owner, repo, path, branch, token)
        if sha:
            body["sha"] = sha
        return await self._json(
            "PUT",
            f"/repos/{owner}/{repo}/contents/{_q(path)}",
            token,
            f"Failed to write {path}",
            json=body,
        )

    async def upsert_workflow_definition(
        self, owner: str, repo: str, branch: str, tag: str, installation_id: int
    ) -> None:
        token = await self._token(installation_id)
        await self._upsert_file(
            owner,
            repo,
            settings.workflow_path,
            branch,
            render_workflow(tag),
            f"Add CodeQL workflow for release {tag}",
            token,
        )
        logger.info("Workflow written to %s/%s@%s", owner, repo, branch)

    async def ensure_workflow_on_default_branch(
        self, owner: str, repo: str, installation_id: int
    ) -> bool:
        """Write the workflow to the default branch unless it is already there."""
        default_branch = await self.get_default_branch(owner, repo, installation_id)
        token = await self._token(installation_id)
        if await self._file_sha(owner, repo, settings.workflow_path, default_branch, token):
            return False
        await self._upsert_file(
            owner,
            repo,
            settings.workflow_path,
            default_branch,
            render_workflow("auto-added"),
            "Add CodeQL workflow",
            token,
        )
        logger.info("Workflow ensured on %s/%s@%s", owner, repo, default_branch)
        return True

    async def push_report_file(
        self,
        owner: str,
        repo: str,
        branch: str,
        content: str,
        installation_id: int,
        tag: Optional[str] = None,
    ) -> str:
        token = await self._token(installation_id)
        path = report_path(tag)
        await self._upsert_file(
            owner,
            repo,
            path,
            branch,
            content,
            f"Add vulnerability report for {tag or 'branch'} scan",
            token,
        )
        logger.info("Report pushed to %s/%s@%s:%s", owner, repo, branch, path)
        return path

    # -- actions -----------------------------------------------------------

    async def _wait_for_file(
        self, owner: str, repo: str, path: str, ref: str, token: str
    ) -> bool:
        for attempt in range(self.poll_attempts):
            if await self._file_sha(owner, repo, path, ref, token):
                return True
            if attempt + 1 < self.poll_attempts:
                await self._sleep(self.poll_interval)
        return False

    async def wait_for_file(
        self, owner: str, repo: str, path: str, ref: str, installation_id: int
    ) -> bool:
        token = await self._token(installation_id)
        return await self._wait_for_file(owner, repo, path, ref, token)

    async def dispatch_workflow(
        self, owner: str, repo: str, branch: str, installation_id: int
    ) -> None:
        token = await self._token(installation_id)
        if self.poll_attempts > 0:
            visible = await self._wait_for_file(
                owner, repo, settings.workflow_path, branch, token
            )
            if not visible:
                logger.warning(
                    "Workflow file not visible on %s/%s@%s after %d polls",
                    owner,
                    repo,
                    branch,
                    self.poll_attempts,
                )
        # Actions indexes new workflow files with some lag
        if self.dispatch_delay > 0:
            await self._sleep(self.dispatch_delay)

        async def _dispatch() -> None:
            await self._json(
                "POST",
                f"/repos/{owner}/{repo}/actions/workflows/"
                f"{_q(settings.SCANNER_WORKFLOW_FILE)}/dispatches",
                token,
                "Failed to dispatch workflow",
                json={"ref": branch},
            )

        await retry(
            _dispatch,
            retries=self.dispatch_retries,
            base_delay=max(self.dispatch_delay, 0.3),
            retry_on=(GithubNotFoundError, GithubConflictError),
            sleep=self._sleep,
        )
        logger.info("Dispatched %s on %s/%s@%s", settings.SCANNER_WORKFLOW_FILE, owner, repo, branch)

    # -- code scanning -----------------------------------------------------

    async def fetch_scan_alerts(
        self, owner: str, repo: str, ref: str, installation_id: int
    ) -> List[Dict[str, Any]]:
        """All alerts, open and closed, for a branch name or ``refs/tags/<tag>``."""
        token = await self._token(installation_id)
        alerts = await self._paginate(
            f"/repos/{owner}/{repo}/code-scanning/alerts",
            token,
            {"ref": ref, "state": "all", "per_page": 100},
            "Failed to fetch alerts",
        )
        logger.info("Fetched %d alerts for %s/%s@%s", len(alerts), owner, repo, ref)
        return alerts

    # -- installations -----------------------------------------------------

    async def list_installation_repositories(
        self, installation_id: int
    ) -> List[Dict[str, Any]]:
        token = await self._token(installation_id)
        return await self._paginate(
            "/installation/repositories",
            token,
            {"per_page": 100},
            "Failed to list installation repositories",
            key="repositories",
        )


def iter_repo_refs(repositories: List[Dict[str, Any]]) -> Iterator[Dict[str, Any]]:
    """Normalise GitHub repository objects to ``repo_id``/``owner``/``name``."""
    for item in repositories:
        owner = (item.get("owner") or {}).get("login") or item.get("full_name", "").split("/")[0]
        yield {"repo_id": item["id"], "owner": owner, "name": item["name"]}
