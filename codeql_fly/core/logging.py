"""JSON logging for the service.

Every record carries the service name, the id of the HTTP request being
handled (set by ``RequestLoggingMiddleware``) and, when a span is active,
OpenTelemetry trace/span ids. Log lines emitted deep inside a webhook
handler can then be joined back to the delivery that caused them.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any, Optional

from opentelemetry import trace
from pythonjsonlogger import jsonlogger

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class ServiceJSONFormatter(jsonlogger.JsonFormatter):
    def __init__(self, *args: Any, service: str = "codeql-fly", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.service = service

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["service"] = self.service

        request_id = request_id_var.get()
        if request_id and "request_id" not in log_record:
            log_record["request_id"] = request_id

        ctx = trace.get_current_span().get_span_context()
        if ctx.is_valid:
            log_record["trace_id"] = trace.format_trace_id(ctx.trace_id)
            log_record["span_id"] = trace.format_span_id(ctx.span_id)


def setup_logging(level: str = "INFO", service: str = "codeql-fly") -> None:
    """Route all logging through one stdout JSON handler."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ServiceJSONFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
            service=service,
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    # Reloads (uvicorn --reload, tests) would otherwise stack handlers
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    # Access lines duplicate the request middleware
    logging.getLogger("uvicorn.access").disabled = True
    for noisy in ("httpx", "httpcore", "pymongo"):
        logging.getLogger(noisy).setLevel("WARNING")
