"""Custom exceptions for Inbox Mirror."""

from __future__ import annotations


class InboxMirrorError(Exception):
    """Base exception for all Inbox Mirror errors."""


class ProviderAPIError(InboxMirrorError):
    """Exception raised when a mail provider request fails.

    Attributes:
        status_code: HTTP status of the failed response, or None for
            transport errors (timeouts, refused connections).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(InboxMirrorError):
    """Exception raised when no usable credentials are available."""


class TokenExpiredError(AuthenticationError):
    """Exception raised when the provider rejects the bearer token."""


class MessageNotFoundError(InboxMirrorError):
    """Exception raised when neither the provider nor the mirror has a message."""


class MirrorStoreError(InboxMirrorError):
    """Exception raised for persistence mirror failures."""


class ConfigurationError(InboxMirrorError):
    """Exception raised for configuration related errors."""
