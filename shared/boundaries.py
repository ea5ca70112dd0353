"""
Error-handling strategies for the two sides of the trust boundary.

- masked_boundary: the public edge. Any failure is logged with the
  correlation ID and replaced by one fixed, non-descriptive response.
- propagate_failures: the internal handlers. Failures are logged with the
  correlation ID and re-raised for the hosting service to map.
"""

import functools
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict

from shared.logging import get_logger, get_request_id

MASKED_STATUS_CODE = 500
MASKED_BODY = "An error occurred"


@dataclass
class BoundaryResponse:
    """Response leaving the public boundary."""
    status_code: int
    body: str
    headers: Dict[str, str] = field(default_factory=dict)


def masked_response() -> BoundaryResponse:
    """The single response every boundary failure collapses into."""
    return BoundaryResponse(status_code=MASKED_STATUS_CODE, body=MASKED_BODY)


def masked_boundary(operation: str) -> Callable:
    """Decorator turning every exception into the masked response."""

    def decorator(func: Callable[..., Awaitable[BoundaryResponse]]) -> Callable[..., Awaitable[BoundaryResponse]]:
        logger = get_logger(f"boundary.{operation}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> BoundaryResponse:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    "Request failed at public boundary",
                    operation=operation,
                    correlation_id=get_request_id(),
                    error_type=type(e).__name__,
                    error=str(e),
                    exc_info=True
                )
                return masked_response()

        return wrapper
    return decorator


def propagate_failures(operation: str) -> Callable:
    """Decorator that logs failures and lets them reach the caller unchanged."""

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        logger = get_logger(f"handler.{operation}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            logger.info("started", operation=operation, correlation_id=get_request_id())
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    "Handler failed",
                    operation=operation,
                    correlation_id=get_request_id(),
                    error_type=type(e).__name__,
                    error=str(e)
                )
                raise

        return wrapper
    return decorator
