from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):

    # Application
    APP_NAME: str = "CodeQL Fly"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]

    # Database (MongoDB)
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "codeql_manager"

    # GitHub App
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_WEBHOOK_SECRET: Optional[str] = None
    GITHUB_APP_ID: Optional[str] = None
    GITHUB_APP_PRIVATE_KEY: Optional[str] = None
    # None disables the client timeout entirely
    GITHUB_HTTP_TIMEOUT: Optional[float] = None

    # Installation token cache (Redis); off by default, every call mints a token
    TOKEN_CACHE_ENABLED: bool = False
    REDIS_URL: str = "redis://localhost:6379/0"

    # Scanner workflow
    SCANNER_WORKFLOW_NAME: str = "CodeQL-Fly"
    SCANNER_WORKFLOW_FILE: str = "codeql-fly.yml"
    SCANNER_LANGUAGES: List[str] = ["javascript-typescript"]
    TEMP_BRANCH_PREFIX: str = "codeql-"
    DEFAULT_SOURCE_BRANCH: str = "main"
    REPORTS_DIR: str = "security-reports"

    # Dispatch readiness
    DISPATCH_DELAY_SECONDS: float = 2.0
    DISPATCH_POLL_ATTEMPTS: int = 5
    DISPATCH_POLL_INTERVAL_SECONDS: float = 1.0
    DISPATCH_RETRIES: int = 2

    # Listing endpoints
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 50

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )

    @property
    def workflow_path(self) -> str:
        return f".github/workflows/{self.SCANNER_WORKFLOW_FILE}"


settings = Settings()
