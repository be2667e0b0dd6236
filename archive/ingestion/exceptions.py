class IngestionError(Exception):
    """Base exception for document ingestion errors."""


class UploadValidationError(IngestionError):
    """Raised when an upload is rejected before hashing or any network call."""


class EmptyFileError(UploadValidationError):
    """Raised for a zero-byte upload."""


class FileTooLargeError(UploadValidationError):
    """Raised when an upload exceeds the configured size limit."""


class UnsupportedFileTypeError(UploadValidationError):
    """Raised when the declared MIME type is not accepted."""


class ExtensionMismatchError(UploadValidationError):
    """Raised when the file extension does not match the declared MIME type."""


class MissingTitleError(UploadValidationError):
    """Raised when the document title is empty or blank."""


class UploadFailedError(IngestionError):
    """Raised when blob upload or record creation fails. The user may try again."""
