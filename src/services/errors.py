"""Error taxonomy and classification for user-facing failures.

Every failure that reaches a route handler ends up as one of the ``AppError``
subclasses below. ``classify_error`` is the single place that decides which
one; handlers never echo provider or database messages back to the client.
"""

import json
import logging
from typing import Any

import httpx
from fastapi import status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for failures surfaced to API clients."""

    category = "processing_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Processing failed. Please try again."

    def __init__(self, message: str | None = None, details: list[str] | None = None):
        self.message = message or self.default_message
        self.details = details or []
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.category, "detail": self.message}
        if self.details:
            body["details"] = self.details
        return body


class Unauthorized(AppError):
    category = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class QuotaExceeded(AppError):
    category = "quota_exceeded"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Daily LLM usage limit reached. Resets at midnight UTC."


class InvalidInput(AppError):
    category = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class NotFound(AppError):
    category = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Item not found"


class NoIngredientsDetected(AppError):
    category = "no_ingredients_detected"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "No ingredients detected. Try being more specific about ingredients."


class ProviderTimeout(AppError):
    category = "provider_timeout"
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    default_message = "Request timeout. Please try again."


class ProviderNetworkError(AppError):
    category = "provider_network_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Language service unavailable. Please try again later."


class ValidationSchemaError(AppError):
    category = "validation_schema_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Processing failed. Please try again."


class StorageError(AppError):
    category = "storage_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Database error. Please try again."


class UsageCheckUnavailable(StorageError):
    """Raised when the quota count cannot be computed; the request is denied."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Usage limit could not be verified. Please try again later."


class ExtractionSchemaError(ValueError):
    """Model output did not match the extraction schema.

    Internal only; ``classify_error`` turns it into ``ValidationSchemaError``.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


def classify_error(exc: BaseException) -> AppError:
    """Map any exception raised while serving a request to an ``AppError``."""
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, TimeoutError | httpx.TimeoutException):
        return ProviderTimeout()
    if isinstance(exc, httpx.HTTPError):
        return ProviderNetworkError()
    if isinstance(exc, ExtractionSchemaError | json.JSONDecodeError | ValidationError):
        return ValidationSchemaError()
    if isinstance(exc, SQLAlchemyError):
        return StorageError()
    return ValidationSchemaError()
