"""
Exact Online Python SDK core (exact_sdk)
========================================

Transport and query-composition layer for the Exact Online REST API.

Usage
-----
>>> from exact_sdk import ConnectionContext, Field
>>>
>>> async with ConnectionContext(token_provider=get_token, refresh_policy=refresh) as conn:
...     await conn.initialize()
...     page = await (
...         conn.query("crm/Accounts")
...         .where(Field("Name").tolower().startswith("acme"), True)
...         .select("ID", "Name")
...         .top(10)
...         .get()
...     )
...     print(conn.rate_limits.minutely.remaining)

Subpackages
-----------
- exact_sdk.core: request execution, rate limits, errors, configuration
- exact_sdk.odata: query builder, expressions, endpoint access

"""

__version__ = "0.1.0"

from exact_sdk.core import (
    BadRequestError,
    ClassifiedError,
    ConnectionContext,
    ExactConfig,
    ExactError,
    ExactValidationError,
    ForbiddenError,
    HttpStatusError,
    InternalServerError,
    NotFoundError,
    RateLimit,
    RateLimitSnapshot,
    RequestExecutor,
    RequestsTransport,
    TooManyRequestsError,
    TransportError,
    TransportResponse,
    UnauthorizedError,
    UnsupportedExpressionError,
)

from exact_sdk.odata import (
    Constant,
    EntityEndpoint,
    Field,
    GetResult,
    MethodCall,
    ODataQuery,
    Operator,
)

__all__ = [
    "__version__",
    # Core
    "BadRequestError",
    "ClassifiedError",
    "ConnectionContext",
    "ExactConfig",
    "ExactError",
    "ExactValidationError",
    "ForbiddenError",
    "HttpStatusError",
    "InternalServerError",
    "NotFoundError",
    "RateLimit",
    "RateLimitSnapshot",
    "RequestExecutor",
    "RequestsTransport",
    "TooManyRequestsError",
    "TransportError",
    "TransportResponse",
    "UnauthorizedError",
    "UnsupportedExpressionError",
    # OData
    "Constant",
    "EntityEndpoint",
    "Field",
    "GetResult",
    "MethodCall",
    "ODataQuery",
    "Operator",
]
