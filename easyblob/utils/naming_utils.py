import re
import threading
import time
import uuid
from typing import Callable

MAX_EXTENSION_LENGTH = 16

_PATH_SEPARATORS = re.compile(r"[\\/]")
_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")


def extract_extension(original_filename: str) -> str:
    """
    Extension of the last path component of `original_filename`, without the dot.
    Only ASCII letters and digits survive, so the result is always safe to put in a filename.
    """
    basename = _PATH_SEPARATORS.split(original_filename)[-1]
    if "." not in basename:
        return ""
    extension = basename.rsplit(".", 1)[1]
    extension = _NON_ALPHANUMERIC.sub("", extension)
    return extension[:MAX_EXTENSION_LENGTH]


class StoredNameGenerator:
    """
    Derives on-disk filenames for uploads.

    Names look like `<token>-<suffix>.<ext>`: `token` is a nanosecond timestamp that
    strictly increases across calls on the same generator, even within one clock tick
    and across threads; `suffix` is random, so generators in different processes
    writing to one directory do not meet either.
    The original filename only ever contributes its sanitized extension.
    """

    def __init__(self, clock: Callable[[], int] = time.time_ns):
        self._clock = clock
        self._lock = threading.Lock()
        self._last_token = 0

    def next_token(self) -> int:
        with self._lock:
            token = max(self._clock(), self._last_token + 1)
            self._last_token = token
            return token

    def derive_stored_name(self, original_filename: str) -> str:
        token = self.next_token()
        suffix = uuid.uuid4().hex[:8]
        stored_name = f"{token}-{suffix}"

        extension = extract_extension(original_filename)
        if extension:
            stored_name += f".{extension}"
        return stored_name
