"""structlog setup shared by the querycache adapters and services.

Two renderers sit behind one processor chain: a coloured console renderer
for development and a JSON renderer for production (``json_output=True``,
which :func:`querycache.main.init_logging` sets when ``APP_ENV`` is
``production``).  The stdlib root logger is rewired through the same chain
so records emitted by the Google client libraries and the Cloud SQL
connector come out in the same format as querycache's own events.

Modules log snake_case events with key/value context, e.g.::

    logger.debug("query_cache_hit", key=key, collection="queries")
"""

import logging
import sys

import structlog

from querycache.utils.errors import ConfigurationError

# Loggers of the Google stack that flood DEBUG output with transport detail.
_GOOGLE_LOGGERS = (
    "google.auth",
    "google.api_core",
    "google.cloud.sql.connector",
    "urllib3",
    "grpc",
)


def _level_number(log_level: str) -> int:
    levels = logging.getLevelNamesMapping()
    try:
        return levels[log_level.upper()]
    except KeyError:
        raise ConfigurationError(message=f"Unknown log level: {log_level!r}") from None


def _processor_chain() -> list[structlog.types.Processor]:
    # contextvars before level/timestamp so bound request context is merged first
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _route_stdlib(
    chain: list[structlog.types.Processor],
    renderer: structlog.types.Processor,
    level: int,
    library_level: int,
) -> None:
    """Send stdlib ``logging`` records through *chain* and *renderer*."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *chain, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    for name in _GOOGLE_LOGGERS:
        logging.getLogger(name).setLevel(max(level, library_level))


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    library_level: str = "WARNING",
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib bridge.

    Args:
        log_level: Minimum level for querycache events (DEBUG, INFO, ...).
        json_output: Render JSON lines instead of the console format.
        library_level: Floor applied to the Google client library loggers.

    Returns:
        A bound logger using the new configuration.

    Raises:
        ConfigurationError: If a level name is not recognised.
    """
    level = _level_number(log_level)
    chain = _processor_chain()
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*chain, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _route_stdlib(chain, renderer, level, _level_number(library_level))
    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound with ``logger_name=name``.

    Falls back to :func:`configure_logging` defaults when nothing has
    configured structlog yet.
    """
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
