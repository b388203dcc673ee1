"""
Health check endpoints
"""
from fastapi import APIRouter, Depends
from pymongo.database import Database

from codeql_fly.database.mongo import get_db

router = APIRouter(tags=["Health"])


@router.get("/healthz")
async def health_check():
    return {"ok": True}


@router.get("/healthz/db")
def database_health(db: Database = Depends(get_db)):
    """MongoDB health check."""
    try:
        db.command("ping")
    except Exception as exc:  # pragma: no cover - best effort probe
        return {"ok": False, "database": "disconnected", "error": str(exc)}
    return {"ok": True, "database": "connected"}
