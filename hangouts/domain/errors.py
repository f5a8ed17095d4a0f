"""Exceptions raised by repositories and services."""

from __future__ import annotations


class HangoutsError(Exception):
    """Base exception for the hangout scheduler."""

    retryable: bool = False

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class StoreUnavailableError(HangoutsError):
    """The backing store could not be reached or refused the operation."""

    retryable = True


class NotFoundError(HangoutsError):
    """A referenced user, event, notification or conversation does not exist."""


class PermissionDeniedError(HangoutsError):
    """The acting user does not own the record being changed."""


class FriendshipError(HangoutsError):
    """Invalid friend-graph transition (self request, duplicate request, ...)."""


class MessageError(HangoutsError):
    """A message could not be sent (not friends, empty content)."""
