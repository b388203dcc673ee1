from .exceptions import (
    GithubApiError,
    GithubConfigurationError,
    GithubConflictError,
    GithubError,
    GithubNotFoundError,
    GithubRateLimitError,
)
from .github_auth import InstallationTokenProvider, build_token_provider, generate_jwt
from .github_client import GitHubGateway, report_path, temp_branch_name
from .signature import compute_signature, verify_signature

__all__ = [
    "GitHubGateway",
    "GithubApiError",
    "GithubConfigurationError",
    "GithubConflictError",
    "GithubError",
    "GithubNotFoundError",
    "GithubRateLimitError",
    "InstallationTokenProvider",
    "build_token_provider",
    "compute_signature",
    "generate_jwt",
    "report_path",
    "temp_branch_name",
    "verify_signature",
]
