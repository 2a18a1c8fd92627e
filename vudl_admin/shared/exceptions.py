"""Shared exception classes for the edit backend."""


class VudlAdminError(Exception):
    """Base exception for the edit backend."""

    pass


class ConfigurationError(VudlAdminError, RuntimeError):
    """Raised when configuration is invalid or missing."""

    pass


class IllegalValueError(VudlAdminError, ValueError):
    """Raised when a request value (state, sort mode, model) cannot be parsed.

    The message is safe to show to the caller verbatim.
    """

    pass


class RepositoryError(VudlAdminError):
    """Raised when the repository store rejects or fails a request."""

    pass


class ObjectNotFoundError(RepositoryError):
    """Raised when the repository store has no object with the requested PID.

    API layer should map this to 404 Not Found.
    """

    def __init__(self, pid: str):
        super().__init__(f"Object not found: {pid}")
        self.pid = pid


class SearchIndexError(VudlAdminError):
    """Raised when the search index returns a non-OK response."""

    pass


__all__ = [
    "VudlAdminError",
    "ConfigurationError",
    "IllegalValueError",
    "RepositoryError",
    "ObjectNotFoundError",
    "SearchIndexError",
]
