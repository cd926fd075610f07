"""Project-wide custom exceptions."""

from __future__ import annotations


class HanbaseError(Exception):
    """Base exception for the Hanbase console."""


class ConfigurationError(HanbaseError):
    """Raised when configuration loading or validation fails."""


class AuthError(HanbaseError):
    """Raised for bad credentials or a missing admin token."""


class SessionExpiredError(AuthError):
    """Raised when the service rejects a previously accepted token."""


class ValidationError(HanbaseError):
    """Raised when builder or form input is malformed (empty names, no columns)."""


class ExecutionError(HanbaseError):
    """Raised when the remote service reports a failed request or statement."""


class TransportError(HanbaseError):
    """Raised when the service cannot be reached at all."""
