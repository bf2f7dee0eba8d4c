from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import cast

import structlog

from tremor.core.constants import HEAD_REVISION


def configure_logging(level: str = "INFO", json: bool | None = None) -> None:
    """Configure structlog for tremor.

    Build output owns stdout, so log entries always go to stderr. When *json*
    is left unset the renderer follows stderr: coloured console lines for an
    interactive terminal, JSON lines otherwise (CI logs, files, pipes).

    Args:
        level: Standard logging level string, e.g. "DEBUG", "INFO", "WARNING".
        json: Force JSON (True) or console (False) rendering.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    if json is None:
        json = not sys.stderr.isatty()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


@contextmanager
def build_context(project: str, revision: str | None = None) -> Iterator[str]:
    """Tag every log entry emitted inside the block with one build's identity.

    Yields the generated ``build_id``. The tags live in structlog's context
    variables, so concurrent builds running in separate tasks stay apart.
    """
    build_id = uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(
        build_id=build_id,
        build_project=project,
        build_revision=revision or HEAD_REVISION,
    ):
        yield build_id


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
