"""
Shared logging configuration for the Relay Access Layer.
"""

import sys
import structlog
import logging
import uuid
import time
from typing import Any, Callable, Dict, Optional
from contextvars import ContextVar

# Context variables for correlation IDs
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
principal_var: ContextVar[Optional[str]] = ContextVar('principal', default=None)

CorrelationIdFactory = Callable[[], str]


def default_correlation_id() -> str:
    """Generate a random correlation ID."""
    return str(uuid.uuid4())


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure structured logging for a service."""

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            ServiceContext(service_name),
            add_correlation_context,
            add_timestamp,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


class ServiceContext:
    """Processor stamping every event with the configured service name."""

    def __init__(self, service_name: str):
        self.service_name = service_name

    def __call__(self, logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict["service"] = self.service_name
        return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add correlation context to log events."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["correlation_id"] = request_id

    principal = principal_var.get()
    if principal:
        event_dict["principal"] = principal

    return event_dict


def add_timestamp(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add high-precision timestamp to log events."""
    event_dict["timestamp"] = time.time()
    return event_dict


def set_request_id(request_id: Optional[str] = None, factory: Optional[CorrelationIdFactory] = None) -> str:
    """Set request ID in context, generating one when not supplied."""
    if request_id is None:
        request_id = (factory or default_correlation_id)()
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> Optional[str]:
    """Current correlation ID, if any."""
    return request_id_var.get()


def set_principal(principal: Optional[str]) -> None:
    """Record the verified caller for subsequent log events."""
    principal_var.set(principal)


def clear_context():
    """Clear all context variables."""
    request_id_var.set(None)
    principal_var.set(None)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
