from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional, Union

from entity_repository.db.config import get_settings


# Context variables for enriched logging
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
repository_var: ContextVar[Optional[str]] = ContextVar("repository", default=None)


class LoggingContextFilter(logging.Filter):
    """
    Logging filter that injects correlation_id and repository from contextvars
    into each log record so formatters can include them.

    If no values are present in the context, placeholders are used.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        cid = correlation_id_var.get()
        repo = repository_var.get()
        setattr(record, "correlation_id", cid or "-")
        setattr(record, "repository", repo or "-")
        return True


# PUBLIC_INTERFACE
@contextmanager
def repository_context(name: str) -> Iterator[None]:
    """Bind the repository name to log records emitted inside the block."""
    token = repository_var.set(name)
    try:
        yield
    finally:
        repository_var.reset(token)


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str, None] = None) -> None:
    """
    Configure root logging with a structured format and context filter.

    Without an explicit level, LOG_LEVEL from the database settings is used.
    """
    if level is None:
        level = get_settings().LOG_LEVEL
    handler = logging.StreamHandler(stream=sys.stdout)
    fmt = (
        "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | repo=%(repository)s | "
        "%(message)s"
    )
    formatter = logging.Formatter(fmt=fmt)
    handler.setFormatter(formatter)
    handler.addFilter(LoggingContextFilter())

    root = logging.getLogger()
    # Remove pre-existing default handlers configured elsewhere (e.g., basicConfig)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
