"""GitHub App authentication utilities."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Tuple

import httpx
from jose import jwt

from codeql_fly.config import settings
from .exceptions import GithubApiError, GithubConfigurationError

logger = logging.getLogger(__name__)

TOKEN_CACHE_KEY = "github_installation_token:{installation_id}"


def load_private_key(raw: str) -> str:
    """Load private key from string or file path."""
    if "PRIVATE KEY" in raw:
        return raw.replace("\\n", "\n")
    path = Path(raw.strip().strip('"'))
    if path.exists():
        return path.read_text()
    raise GithubConfigurationError(
        "GITHUB_APP_PRIVATE_KEY must be a PEM string or path to a private key file",
    )


def generate_jwt(app_id: str, private_key: str) -> str:
    """Generate a JWT for GitHub App authentication."""
    now = int(time.time())
    payload = {
        "iat": now - 60,
        "exp": now + 600,
        "iss": app_id,
    }
    pem = load_private_key(private_key)
    return jwt.encode(payload, pem, algorithm="RS256")


async def request_installation_token(
    client: httpx.AsyncClient, jwt_token: str, installation_id: int
) -> Tuple[str, Optional[datetime]]:
    """Exchange an app JWT for an installation access token."""
    response = await client.post(
        f"/app/installations/{installation_id}/access_tokens",
        headers={
            "Authorization": f"Bearer {jwt_token}",
            "Accept": "application/vnd.github+json",
        },
    )
    if response.is_error:
        raise GithubApiError(
            f"Failed to get installation token for {installation_id}",
            response.status_code,
            response.text,
        )
    data = response.json()
    token = data.get("token")
    if not token:
        raise GithubConfigurationError(
            "GitHub installation token response missing token"
        )
    expires_at_raw = data.get("expires_at")
    expires_at = (
        datetime.fromisoformat(expires_at_raw.replace("Z", "+00:00"))
        if expires_at_raw
        else None
    )
    return token, expires_at


class InstallationTokenProvider:
    """Mints installation-scoped tokens, optionally caching them in Redis."""

    def __init__(
        self,
        app_id: Optional[str] = None,
        private_key: Optional[str] = None,
        redis_client: Any = None,
    ):
        self.app_id = app_id if app_id is not None else settings.GITHUB_APP_ID
        self.private_key = (
            private_key if private_key is not None else settings.GITHUB_APP_PRIVATE_KEY
        )
        self.redis_client = redis_client

    async def get_token(self, client: httpx.AsyncClient, installation_id: int) -> str:
        if not installation_id:
            raise GithubConfigurationError(
                "Installation id is required to generate a GitHub App token"
            )
        if not self.app_id or not self.private_key:
            raise GithubConfigurationError(
                "GITHUB_APP_ID and GITHUB_APP_PRIVATE_KEY must be configured"
            )

        redis_key = TOKEN_CACHE_KEY.format(installation_id=installation_id)
        if self.redis_client is not None:
            cached_token = self.redis_client.get(redis_key)
            if cached_token:
                if isinstance(cached_token, bytes):
                    return cached_token.decode("utf-8")
                return cached_token

        jwt_token = generate_jwt(self.app_id, self.private_key)
        token, expires_at = await request_installation_token(
            client, jwt_token, installation_id
        )

        if self.redis_client is not None and expires_at is not None:
            ttl = int((expires_at - datetime.now(timezone.utc)).total_seconds() - 60)
            if ttl > 0:
                self.redis_client.set(redis_key, token, ex=ttl)

        return token

    def clear(self, installation_id: int) -> None:
        """Remove cached installation token when the app is uninstalled."""
        if self.redis_client is not None:
            self.redis_client.delete(
                TOKEN_CACHE_KEY.format(installation_id=installation_id)
            )


def build_token_provider() -> InstallationTokenProvider:
    redis_client = None
    if settings.TOKEN_CACHE_ENABLED:
        from codeql_fly.core.redis import get_redis

        redis_client = get_redis()
        logger.info("Installation token cache enabled")
    return InstallationTokenProvider(redis_client=redis_client)
