"""
DRF exception handler that maps domain errors to HTTP responses.

Domain errors carry a code and a user-safe message; only those are returned.
Anything else falls through to DRF's default handler.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from events.domain.errors import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_CATEGORY = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
)


def domain_exception_handler(exc, context):
    """
    Translate DomainError subclasses into JSON error responses.

    Args:
        exc: The exception that was raised
        context: Dictionary with 'view' and 'request' keys

    Returns:
        Response with ``code`` and ``message`` (and ``field`` for validation
        errors), or whatever DRF's default handler returns.
    """
    if not isinstance(exc, DomainError):
        return exception_handler(exc, context)

    body = {"code": exc.code.value, "message": exc.message}
    if isinstance(exc, ValidationError):
        body["field"] = exc.field

    for category, http_status in _STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            logger.info("Request rejected with %s: %s", exc.code.value, exc.message)
            return Response(body, status=http_status)

    logger.error("Unmapped domain error %s", exc.code.value)
    return Response(body, status=status.HTTP_400_BAD_REQUEST)
