"""Logging setup: request id on every record and bearer token masking."""

import logging
import re
from contextvars import ContextVar

REDACTED = "[redacted]"

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

_BEARER_PATTERN = re.compile(r"(Bearer\s+)([A-Za-z0-9\-._~+/=]+)", re.IGNORECASE)


class RequestIdFilter(logging.Filter):
    """Attach the current request id to each record as ``request_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get()
        return True


class BearerTokenFilter(logging.Filter):
    """Mask bearer tokens that end up in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        sanitized = _BEARER_PATTERN.sub(r"\1" + REDACTED, message)
        if sanitized != message:
            record.msg = sanitized
            record.args = ()
        return True


def configure_logging(level_name: str = "INFO") -> None:
    """Install one stream handler on the root logger."""
    numeric_level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    )
    handler.addFilter(RequestIdFilter())
    handler.addFilter(BearerTokenFilter())

    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers = []
        logger.setLevel(numeric_level)
        logger.propagate = True
