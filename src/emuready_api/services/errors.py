"""Typed errors raised by the moderation engine.

Each error carries the HTTP status the API layer should answer with.
"""

import logging

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import asyncpg

from fastapi import status

logger = logging.getLogger(__name__)


class ModerationError(Exception):
    """Base class for engine errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Moderation request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


# Authorization


class UnauthorizedError(ModerationError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class ForbiddenError(ModerationError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


# Not found


class NotFoundError(ModerationError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


# Conflicts


class ConflictError(ModerationError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Request conflicts with current state"


class AlreadyBannedError(ConflictError):
    default_message = "User already has an active ban"


class AlreadyResolvedError(ConflictError):
    default_message = "Report has already been resolved"


class DuplicateReportError(ConflictError):
    default_message = "You have already reported this content"


class InvalidTransitionError(ConflictError):
    default_message = "Status transition is not allowed"


class BanNotActiveError(ConflictError):
    default_message = "Ban is not active"


# Validation


class InvalidInputError(ModerationError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid input"


class ExpirationInPastError(InvalidInputError):
    default_message = "Expiration date must be in the future"


class SelfReportNotAllowedError(InvalidInputError):
    default_message = "You cannot report your own content"


class SelfBanNotAllowedError(InvalidInputError):
    default_message = "You cannot ban yourself"


class InvalidBanUpdateError(InvalidInputError):
    default_message = "Ban activity can only change through lift or archive"


class InvalidTrustAdjustmentError(InvalidInputError):
    default_message = "Invalid trust adjustment"


# Internal


class InternalError(ModerationError):
    default_message = "Internal error"


@asynccontextmanager
async def store_errors_as_internal(operation: str) -> AsyncGenerator[None]:
    """Surface database failures as InternalError.

    Wrap the transaction block so commit failures are covered too.
    """
    try:
        yield
    except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        logger.exception(f"Database failure while trying to {operation}")
        raise InternalError(f"Failed to {operation}") from e
