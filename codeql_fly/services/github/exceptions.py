from typing import Optional, Union


class GithubError(Exception):
    pass


class GithubConfigurationError(GithubError):
    pass


class GithubApiError(GithubError):
    """Non-success response from the GitHub REST API."""

    def __init__(self, message: str, status_code: int, body: str = ""):
        super().__init__(f"{message}: {body}" if body else message)
        self.status_code = status_code
        self.body = body


class GithubNotFoundError(GithubApiError):
    pass


class GithubConflictError(GithubApiError):
    pass


class GithubRateLimitError(GithubApiError):
    def __init__(
        self,
        message: str,
        status_code: int,
        body: str = "",
        retry_after: Union[int, float, None] = None,
    ):
        super().__init__(message, status_code, body)
        self.retry_after: Optional[float] = retry_after
