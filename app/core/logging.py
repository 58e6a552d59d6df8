import logging
import os
import uuid
from contextvars import ContextVar
from typing import Optional


DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEFAULT_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | req=%(request_id)s "
    "user=%(user_id)s | %(message)s"
)

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
user_id_ctx: ContextVar[str] = ContextVar("user_id", default="-")


def new_request_id(incoming: Optional[str] = None) -> str:
    """Bind a request id for the current context and return it."""
    rid = (incoming or "").strip()[:64] or uuid.uuid4().hex[:12]
    request_id_ctx.set(rid)
    user_id_ctx.set("-")
    return rid


def bind_user(user_id: object) -> None:
    user_id_ctx.set(str(user_id))


class ContextFilter(logging.Filter):
    """Stamps request and user ids on records; explicit ``extra`` wins."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "request_id"):
            record.request_id = request_id_ctx.get()
        if not hasattr(record, "user_id"):
            record.user_id = user_id_ctx.get()
        return True


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Initialize root logger with the app formatter and context filter."""
    resolved_level = getattr(logging, (level or DEFAULT_LEVEL), logging.INFO)
    formatter = logging.Formatter(fmt or DEFAULT_FORMAT)

    root = logging.getLogger()
    root.setLevel(resolved_level)

    # Reloads re-run this; drop old handlers first
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.addFilter(ContextFilter())
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger; ensure root is initialized."""
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)
