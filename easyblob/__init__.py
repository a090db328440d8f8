from easyblob.easyblob import EasyBlob
from easyblob.models.blob import BlobRecord, RetrievedBlob
from easyblob.models.config import StorageConfig
from easyblob.models.errors import (
    BlobDeleteError,
    BlobReadError,
    BlobStorageError,
    ErrorKind,
    FileMissingError,
    InvalidIdError,
    NotFoundError,
    RejectionReason,
    StoreError,
    ValidationError,
    WriteError,
)
from easyblob.repos.blob_repo import BlobRepo
from easyblob.repos.file_repo import FilesystemFileRepo, InMemoryFileRepo
from easyblob.repos.metadata_repo import InMemoryMetadataRepo, SQLMetadataRepo

__all__ = [
    "EasyBlob",
    "BlobRepo",
    "BlobRecord",
    "RetrievedBlob",
    "StorageConfig",
    "FilesystemFileRepo",
    "InMemoryFileRepo",
    "SQLMetadataRepo",
    "InMemoryMetadataRepo",
    "BlobStorageError",
    "ErrorKind",
    "RejectionReason",
    "ValidationError",
    "InvalidIdError",
    "NotFoundError",
    "FileMissingError",
    "WriteError",
    "StoreError",
    "BlobReadError",
    "BlobDeleteError",
]
