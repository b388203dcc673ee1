"""Common dependencies for API endpoints."""

from typing import AsyncIterator

from fastapi import Depends
from pymongo.database import Database

from codeql_fly.config import settings
from codeql_fly.database.mongo import get_db
from codeql_fly.repositories import clamp_page
from codeql_fly.services.dispatcher import EventDispatcher
from codeql_fly.services.github import GitHubGateway
from codeql_fly.services.repo_service import RepositoryService


async def get_gateway() -> AsyncIterator[GitHubGateway]:
    gateway = GitHubGateway()
    try:
        yield gateway
    finally:
        await gateway.aclose()


def get_dispatcher(
    db: Database = Depends(get_db),
    gateway: GitHubGateway = Depends(get_gateway),
) -> EventDispatcher:
    return EventDispatcher.from_db(db, gateway)


def get_repository_service(
    db: Database = Depends(get_db),
    gateway: GitHubGateway = Depends(get_gateway),
) -> RepositoryService:
    return RepositoryService(db, gateway)


class Pagination:
    def __init__(self, page: int = 0, limit: int = settings.DEFAULT_PAGE_SIZE):
        self.page, self.limit = clamp_page(page, limit, settings.MAX_PAGE_SIZE)


__all__ = [
    "Pagination",
    "get_db",
    "get_dispatcher",
    "get_gateway",
    "get_repository_service",
]
