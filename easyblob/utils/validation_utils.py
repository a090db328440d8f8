from typing import Any, Collection

from easyblob.models.blob import BlobId
from easyblob.models.errors import InvalidIdError, RejectionReason


def validate_upload(
    size_bytes: int,
    mime_type: str,
    size_limit: int,
    allowed_mime_types: Collection[str],
) -> None | RejectionReason:
    """
    Check an upload against the size and MIME type policy.
    Returns `None` if the upload is acceptable, otherwise the reason it was rejected.
    An empty `allowed_mime_types` accepts every type.
    """
    if size_bytes > size_limit:
        return RejectionReason.TOO_LARGE
    if allowed_mime_types and mime_type not in allowed_mime_types:
        return RejectionReason.TYPE_NOT_ALLOWED
    return None


def parse_blob_id(value: Any) -> BlobId:
    # bool is an int subclass, but `True` is not an id
    if isinstance(value, bool):
        raise InvalidIdError(f"Invalid blob ID: {value!r}", blob_id=value)

    if isinstance(value, int):
        blob_id = value
    elif isinstance(value, str) and value.isascii() and value.isdigit():
        blob_id = int(value)
    else:
        raise InvalidIdError(f"Invalid blob ID: {value!r}", blob_id=value)

    if blob_id <= 0:
        raise InvalidIdError(f"Invalid blob ID: {value!r}", blob_id=value)
    return blob_id
