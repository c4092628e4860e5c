"""structlog setup shared by the sorter library and the command-line driver.

Events are rendered as one JSON object per line, or as colored console text
during development, and always written to stderr: stdout belongs to the sort
result. Run-wide fields such as the correlation id and the graph file live in
contextvars and are merged into every event.

Example:
    >>> from src.log_config import configure_logging, get_logger
    >>> configure_logging(level="INFO")
    >>> get_logger(__name__).info("graph_loaded", node_count=12, edge_count=30)
"""

import logging
import sys
from typing import Any

import structlog

_CALLSITE_FIELDS = [
    structlog.processors.CallsiteParameter.MODULE,
    structlog.processors.CallsiteParameter.FUNC_NAME,
    structlog.processors.CallsiteParameter.LINENO,
]


def _resolve_level(level: str) -> int:
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        msg = f"Invalid log level: {level}"
        raise ValueError(msg)
    return numeric_level


def _build_processors(json_logs: bool) -> list[Any]:
    """Return the processor chain, ending with the renderer for ``json_logs``."""
    processors: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(parameters=_CALLSITE_FIELDS),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.contextvars.merge_contextvars,
    ]

    if json_logs:
        # Node values are arbitrary objects; repr() whatever json can't encode.
        processors.append(structlog.processors.JSONRenderer(default=repr))
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            ),
        )
    return processors


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """Route structlog through stdlib logging on stderr.

    The root handler is only installed when none exists yet, so handlers set
    up by the host application (or by pytest's ``caplog``) are left in place.

    Args:
        level: Level name, case-insensitive (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render JSON lines; ``False`` selects the console renderer

    Raises:
        ValueError: If ``level`` is not a logging level name
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=_resolve_level(level),
    )

    structlog.configure(
        processors=_build_processors(json_logs),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, usually named after the calling module."""
    return structlog.get_logger(name)


def bind_correlation_id(correlation_id: str) -> None:
    """Tag every following event in this context with ``correlation_id``.

    Example:
        >>> bind_correlation_id("sort-12345")
        >>> logger.info("graph_sorted")  # carries correlation_id
    """
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def unbind_correlation_id() -> None:
    structlog.contextvars.unbind_contextvars("correlation_id")


def bind_context(**kwargs: Any) -> None:
    """Merge ``kwargs`` into every following event in this context.

    Example:
        >>> bind_context(graph_file="graph.yaml", node_count=12)
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop all context-bound fields, correlation id included."""
    structlog.contextvars.clear_contextvars()
