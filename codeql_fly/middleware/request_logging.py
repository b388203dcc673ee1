"""Request logging middleware.

- Adds an X-Request-ID header to responses (reusing any incoming one)
- Logs method, path, status, duration and client IP
- Never logs bodies; webhook payloads and signatures stay out of the logs
"""
from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from codeql_fly.core.logging import request_id_var

logger = logging.getLogger("codeql_fly.request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        start = time.monotonic()

        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        context = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
            "request_id": request_id,
            "github_event": request.headers.get("X-GitHub-Event"),
        }

        try:
            response = await call_next(request)
        except Exception:  # pragma: no cover - logged then reraised
            context["duration_ms"] = int((time.monotonic() - start) * 1000)
            logger.exception("Unhandled exception during request", extra=context)
            raise
        finally:
            request_id_var.reset(token)

        context["status"] = response.status_code
        context["duration_ms"] = int((time.monotonic() - start) * 1000)
        logger.info("Request finished", extra=context)

        response.headers.setdefault("X-Request-ID", request_id)
        return response
