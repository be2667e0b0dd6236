class StorageError(Exception):
    """Base exception for object storage errors."""


class ObjectNotFoundError(StorageError):
    """Raised when a stored object does not exist at the resolved path."""
