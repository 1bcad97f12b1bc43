"""
exact_sdk.core - Core connectivity and request execution
========================================================

This module provides the foundational classes for talking to the API:

- RequestExecutor: authenticated requests with throttling and auth retry
- RateLimit / RateLimitSnapshot: quota state from response headers
- RequestsTransport: default HTTP transport
- ConnectionContext: high-level connection manager
- The error taxonomy (ExactError and subclasses)

"""

from exact_sdk.core.errors import (
    BadRequestError,
    ClassifiedError,
    ExactError,
    ExactValidationError,
    ForbiddenError,
    HttpStatusError,
    InternalServerError,
    NotFoundError,
    TooManyRequestsError,
    TransportError,
    UnauthorizedError,
    UnsupportedExpressionError,
    classify_error,
)
from exact_sdk.core.ratelimit import RateLimit, RateLimitSnapshot
from exact_sdk.core.transport import HttpTransport, RequestsTransport, TransportResponse
from exact_sdk.core.executor import RequestExecutor
from exact_sdk.core.connection import ConnectionContext, ExactConfig

__all__ = [
    "BadRequestError",
    "ClassifiedError",
    "ExactError",
    "ExactValidationError",
    "ForbiddenError",
    "HttpStatusError",
    "InternalServerError",
    "NotFoundError",
    "TooManyRequestsError",
    "TransportError",
    "UnauthorizedError",
    "UnsupportedExpressionError",
    "classify_error",
    "RateLimit",
    "RateLimitSnapshot",
    "HttpTransport",
    "RequestsTransport",
    "TransportResponse",
    "RequestExecutor",
    "ConnectionContext",
    "ExactConfig",
]
