"""
Correlation ID utilities for distributed tracing.
Shared by the HTTP edge, the queue worker and the CLI.
"""

import uuid
from contextvars import ContextVar
from typing import Dict, Optional

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Context variable to store correlation ID across async operations
correlation_id_context: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """
    Get the current correlation ID from context.
    Generates (and stores) a new one if none exists.
    """
    correlation_id = correlation_id_context.get("")
    if not correlation_id:
        correlation_id = create_correlation_id()
        correlation_id_context.set(correlation_id)
    return correlation_id


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_context.set(correlation_id)


def create_correlation_id() -> str:
    return str(uuid.uuid4())


def extract_correlation_id_from_headers(headers: Dict[str, str]) -> Optional[str]:
    """
    Extract correlation ID from request headers (case-insensitive).

    Returns:
        The header value, or None when the caller did not send one
    """
    for key, value in headers.items():
        if key.lower() == CORRELATION_ID_HEADER.lower() and value:
            return value
    return None
