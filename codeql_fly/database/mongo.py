"""MongoDB connection helpers and index bootstrap."""

from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from codeql_fly.config import settings
from codeql_fly.repositories.base import CollectionName

logger = logging.getLogger(__name__)

_clients: Dict[Tuple[str, frozenset], MongoClient] = {}


def get_client(uri: str, **kwargs: Any) -> MongoClient:
    """
    Return a cached MongoClient keyed by URI and options.
    """
    key = (uri, frozenset(kwargs.items()))
    if key not in _clients:
        _clients[key] = MongoClient(uri, **kwargs)
    return _clients[key]


def get_database() -> Database:
    """Return a MongoDB database handle (non-dependency use)."""
    return get_client(settings.MONGODB_URI)[settings.MONGODB_DB_NAME]


def get_db():
    """FastAPI dependency that yields a database handle."""
    db = get_database()
    try:
        yield db
    finally:
        # Clients are cached; pooling is left to PyMongo.
        pass


def ensure_indexes(db: Database) -> None:
    """Create the indexes the lifecycle relies on for uniqueness."""
    db[CollectionName.INSTALLATIONS.value].create_index(
        [("installation_id", ASCENDING)], unique=True
    )
    db[CollectionName.REPOS.value].create_index([("repo_id", ASCENDING)], unique=True)
    db[CollectionName.REPOS.value].create_index(
        [("owner", ASCENDING), ("name", ASCENDING)]
    )

    workflows = db[CollectionName.WORKFLOWS.value]
    workflows.create_index(
        [("owner", ASCENDING), ("repo", ASCENDING), ("temp_branch", ASCENDING)],
        unique=True,
        name="uniq_temp_branch",
    )
    workflows.create_index([("owner", ASCENDING), ("repo", ASCENDING)])

    alerts = db[CollectionName.ALERTS.value]
    alerts.create_index([("repo", ASCENDING), ("alert_id", ASCENDING)], unique=True)
    alerts.create_index([("repo", ASCENDING), ("deleted_at", ASCENDING)])

    reports = db[CollectionName.REPORTS.value]
    reports.create_index(
        [("owner", ASCENDING), ("repo", ASCENDING), ("created_at", DESCENDING)]
    )
    reports.create_index([("workflow_id", ASCENDING)], unique=True, sparse=True)

    logger.info("MongoDB indexes ensured", extra={"database": db.name})
