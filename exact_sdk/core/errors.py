"""
exact_sdk.core.errors - Error taxonomy and response classification
===================================================================

Every failure raised by this package derives from :class:`ExactError`:

- ExactValidationError: local, synchronous validation failures that never
  reach the network
- TransportError: connectivity failures and unclassified HTTP statuses
- HttpStatusError: raw non-success status, used as the underlying cause
- ClassifiedError and its subclasses: typed API failures
"""

from __future__ import annotations

from typing import Dict, Optional, Type

from pydantic import BaseModel, ValidationError


class ExactError(Exception):
    """Base class for every error raised by exact_sdk."""


class ExactValidationError(ExactError, ValueError):
    """Invalid input detected before any request is sent."""


class UnsupportedExpressionError(ExactValidationError):
    """An expression node cannot be translated to OData syntax."""


class TransportError(ExactError):
    """
    Failure of the HTTP exchange itself.

    Raised without a status for connectivity problems, and re-raised as-is
    for statuses that have no specific classification.

    Attributes
    ----------
    status : int, optional
        HTTP status code, ``None`` when no response was received
    url : str
        The URL that was called
    body : str
        Response body, if any
    headers : dict
        Response headers, if any
    """

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        url: str = "",
        body: str = "",
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.status = status
        self.url = url
        self.body = body or ""
        self.headers = headers or {}


class HttpStatusError(TransportError):
    """The service answered with a non-success status."""

    def __init__(
        self,
        status: int,
        reason: str,
        url: str,
        *,
        body: str = "",
        headers: Optional[Dict[str, str]] = None,
    ):
        snippet = (body or "")[:1200]
        message = f"{status} {reason}".strip() + f" for url: {url}"
        if snippet:
            message = f"{message}: {snippet}"
        super().__init__(message, status=status, url=url, body=body, headers=headers)
        self.reason = reason


class ClassifiedError(ExactError):
    """
    Typed API failure.

    Attributes
    ----------
    message : str
        Server-provided message, or the transport message as fallback
    status : int
        HTTP status code
    cause : Exception
        The underlying transport failure
    """

    status: int = 0

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class BadRequestError(ClassifiedError):
    status = 400


class UnauthorizedError(ClassifiedError):
    status = 401


class ForbiddenError(ClassifiedError):
    status = 403


class NotFoundError(ClassifiedError):
    status = 404


class InternalServerError(ClassifiedError):
    status = 500


class TooManyRequestsError(ClassifiedError):
    status = 429


_STATUS_ERRORS: Dict[int, Type[ClassifiedError]] = {
    400: BadRequestError,
    405: BadRequestError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    500: InternalServerError,
    429: TooManyRequestsError,
}


# --------------------------------------------------------------------------
# Error body: {"error": {"message": {"value": "..."}}}
# --------------------------------------------------------------------------

class ServerErrorText(BaseModel):
    value: Optional[str] = None


class ServerErrorDetail(BaseModel):
    message: Optional[ServerErrorText] = None


class ServerErrorMessage(BaseModel):
    """Error document returned by the service on failed calls."""
    error: Optional[ServerErrorDetail] = None

    @property
    def text(self) -> Optional[str]:
        if self.error is None or self.error.message is None:
            return None
        return self.error.message.value


def parse_server_message(body: Optional[str]) -> Optional[str]:
    """
    Extract ``error.message.value`` from an error body.

    Empty, malformed or differently shaped bodies yield ``None``.
    """
    if not body or not body.strip():
        return None
    try:
        return ServerErrorMessage.model_validate_json(body).text
    except ValidationError:
        return None


def classify_error(
    status: int,
    body: Optional[str],
    cause: BaseException,
) -> Optional[ClassifiedError]:
    """
    Map a failed response to a typed error.

    Parameters
    ----------
    status : int
        HTTP status code
    body : str, optional
        Raw response body
    cause : Exception
        Underlying transport failure, whose message is the fallback

    Returns
    -------
    ClassifiedError or None
        ``None`` for statuses without a specific classification
    """
    error_cls = _STATUS_ERRORS.get(status)
    if error_cls is None:
        return None
    message = parse_server_message(body) or str(cause)
    return error_cls(message, cause)
