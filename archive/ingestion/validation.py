from archive.ingestion.exceptions import (
    EmptyFileError,
    ExtensionMismatchError,
    FileTooLargeError,
    MissingTitleError,
    UnsupportedFileTypeError,
)
from archive.ingestion.models import UploadRequest
from archive.logging.logger import Log, LogCategory

MAX_UPLOAD_BYTES = 15 * 1024 * 1024

ALLOWED_FILE_TYPES: dict[str, tuple[str, ...]] = {
    "application/pdf": (".pdf",),
    "image/png": (".png",),
    "image/jpeg": (".jpg", ".jpeg"),
    "image/jpg": (".jpg",),
}


def file_extension(file_name: str) -> str:
    """Lowercased extension with its dot, or "" when there is none."""
    if "." not in file_name:
        return ""
    return "." + file_name.rsplit(".", 1)[-1].lower()


def validate_upload(upload: UploadRequest, max_bytes: int = MAX_UPLOAD_BYTES) -> None:
    """Reject an upload before it is hashed or sent anywhere.

    Checks run in a fixed order so the caller always gets the first reason:
    empty file, size limit, MIME type, extension, title.

    Raises:
        UploadValidationError: the specific subclass for the failed check.
    """
    if upload.size == 0:
        _reject(upload, "empty file")
        raise EmptyFileError("File appears to be corrupted or empty. Please select a valid file.")

    if upload.size > max_bytes:
        _reject(upload, "size exceeded")
        raise FileTooLargeError(
            f"File size exceeds the maximum limit of {max_bytes / 1024 / 1024:.0f}MB. "
            f"Your file is {upload.size / 1024 / 1024:.2f}MB."
        )

    allowed_extensions = ALLOWED_FILE_TYPES.get(upload.content_type)
    if allowed_extensions is None:
        _reject(upload, "invalid type")
        raise UnsupportedFileTypeError(
            f'File type "{upload.content_type or "unknown"}" is not supported. '
            "Only PDF, PNG, and JPEG files are allowed."
        )

    extension = file_extension(upload.file_name)
    if extension not in allowed_extensions:
        _reject(upload, "invalid extension")
        raise ExtensionMismatchError(
            f'File extension "{extension}" does not match type {upload.content_type}. '
            f"Expected: {', '.join(allowed_extensions)}"
        )

    if not upload.title.strip():
        _reject(upload, "missing title")
        raise MissingTitleError("Please enter a document title")


def _reject(upload: UploadRequest, reason: str) -> None:
    Log.warning(
        f"File validation failed: {reason}",
        category=LogCategory.UPLOAD,
        file_name=upload.file_name,
        file_size=upload.size,
        file_type=upload.content_type,
    )
