"""Structured logging configuration for the Finnhub data source."""

import sys
import logging
import contextvars
from typing import Optional, Dict, Any
from functools import lru_cache

import structlog
from structlog.types import Processor


# Context variable for the batch currently being served
query_id_context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'query_id', default=None
)


def add_query_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add query batch context to log entries."""
    query_id = query_id_context.get()
    if query_id:
        event_dict['query_id'] = query_id
    return event_dict


def setup_logging(
    log_level: str = "INFO",
    service_name: str = "finnhub-datasource",
    environment: str = "development",
    json_logs: bool = True,
) -> None:
    """Setup structured logging configuration."""
    
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )
    
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        add_query_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    
    if json_logs and environment.lower() == "production":
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    
    structlog.contextvars.bind_contextvars(
        service=service_name,
        environment=environment,
    )


@lru_cache()
def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def set_query_context(query_id: str) -> None:
    """Set query batch context for logging."""
    query_id_context.set(query_id)


def clear_query_context() -> None:
    """Clear query batch context."""
    query_id_context.set(None)
