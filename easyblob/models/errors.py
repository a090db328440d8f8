from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    TOO_LARGE = "TooLarge"
    TYPE_NOT_ALLOWED = "TypeNotAllowed"
    WRITE_ERROR = "WriteError"
    STORE_ERROR = "StoreError"
    INVALID_ID = "InvalidId"
    NOT_FOUND = "NotFound"
    FILE_MISSING = "FileMissing"
    ERROR = "Error"


class RejectionReason(str, Enum):
    TOO_LARGE = ErrorKind.TOO_LARGE.value
    TYPE_NOT_ALLOWED = ErrorKind.TYPE_NOT_ALLOWED.value


class BlobStorageError(Exception):
    """
    Base class for every failure the blob storage core reports.
    `kind` tags the failure for callers; `public_message` is safe to show to clients.
    """

    kind: ErrorKind = ErrorKind.ERROR
    public_message: str = "Server error"

    def __init__(self, message: None | str = None, blob_id: Any = None):
        self.blob_id = blob_id
        super().__init__(message or self.public_message)


class ValidationError(BlobStorageError):
    def __init__(
        self,
        reason: RejectionReason,
        size_bytes: None | int = None,
        mime_type: None | str = None,
    ):
        self.reason = reason
        self.kind = ErrorKind(reason.value)
        self.size_bytes = size_bytes
        self.mime_type = mime_type
        if reason is RejectionReason.TOO_LARGE:
            self.public_message = "File too large"
        else:
            self.public_message = f"File type {mime_type} not allowed"
        super().__init__(self.public_message)


class InvalidIdError(BlobStorageError):
    kind = ErrorKind.INVALID_ID
    public_message = "Invalid blob ID"


class NotFoundError(BlobStorageError):
    kind = ErrorKind.NOT_FOUND
    public_message = "Blob not found"


class FileMissingError(BlobStorageError):
    # metadata row exists but its backing file does not
    kind = ErrorKind.FILE_MISSING
    public_message = "File not found or inaccessible"


class WriteError(BlobStorageError):
    kind = ErrorKind.WRITE_ERROR
    public_message = "Failed to store the file"


class StoreError(BlobStorageError):
    kind = ErrorKind.STORE_ERROR


class BlobReadError(BlobStorageError):
    public_message = "Error serving the file"


class BlobDeleteError(BlobStorageError):
    public_message = "Failed to delete physical file"
