from .exceptions import (
    ConfigurationError,
    IllegalValueError,
    ObjectNotFoundError,
    RepositoryError,
    SearchIndexError,
    VudlAdminError,
)

__all__ = [
    "VudlAdminError",
    "ConfigurationError",
    "IllegalValueError",
    "RepositoryError",
    "ObjectNotFoundError",
    "SearchIndexError",
]
