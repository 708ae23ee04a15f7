"""Custom exception hierarchy for rwrk."""

from __future__ import annotations


class RwrkError(Exception):
    """Base exception for all rwrk errors.

    All custom exceptions in rwrk inherit from this class, making it easy
    to catch any rwrk-specific error with a single except clause.
    """


class ConfigError(RwrkError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Worker count is less than one.
        - An environment variable has an invalid value.
    """


class EngineError(RwrkError):
    """Raised when a load run fails outside of individual requests."""


class RequestError(RwrkError):
    """Base class for failures of a single request.

    Request errors never escape a worker: they are converted into
    counters and the worker moves on to its next request.
    """


class RequestBuildError(RequestError):
    """Raised when a target URL cannot be turned into a valid request."""


class TransportError(RequestError):
    """Raised when a connection could not be obtained or the exchange failed."""


class BodyReadError(RequestError):
    """Raised when a response body fails partway through draining."""
