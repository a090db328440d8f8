import os

import structlog

from easyblob.models.errors import BlobDeleteError, BlobReadError, WriteError
from easyblob.utils.timing_utils import Timer

Value = bytes


class FileRepo:
    """
    The file half of blob storage: bytes addressed by stored name, inside one storage directory.
    Stored names are opaque single path components; they never carry a directory.
    """

    def __init__(self, storage_dir: str):
        self.storage_dir = storage_dir

    async def on_startup(self, log: structlog.stdlib.BoundLogger):
        pass

    async def close(self):
        pass

    async def write(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
        value: Value,
    ) -> None:
        """
        Write `value` under a name that must not exist yet.
        Raises `WriteError` if the file cannot be created, including when the name is taken.
        """
        timer = Timer()
        timer.start()
        await self._write(log, stored_name, value)
        timer.end()
        log.info(
            "Wrote blob file",
            stored_name=stored_name,
            size=len(value),
            duration=timer.wall_time,
        )

    async def _write(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
        value: Value,
    ) -> None:
        raise NotImplementedError

    async def is_readable(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
    ) -> bool:
        return await self._is_readable(log, stored_name)

    async def _is_readable(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
    ) -> bool:
        raise NotImplementedError

    async def read(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
    ) -> Value:
        timer = Timer()
        timer.start()
        value = await self._read(log, stored_name)
        timer.end()
        log.info(
            "Read blob file",
            stored_name=stored_name,
            size=len(value),
            duration=timer.wall_time,
        )
        return value

    async def _read(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
    ) -> Value:
        raise NotImplementedError

    async def delete(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
    ) -> bool:
        """
        Remove the file. Returns `False` if it was already gone.
        """
        existed = await self._delete(log, stored_name)
        log.info(
            "Deleted blob file",
            stored_name=stored_name,
            existed=existed,
        )
        return existed

    async def _delete(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
    ) -> bool:
        raise NotImplementedError


class InMemoryFileRepo(FileRepo):
    def __init__(self, storage_dir: str = ""):
        super().__init__(storage_dir)
        self._files: dict[str, Value] = {}

    async def _write(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
        value: Value,
    ) -> None:
        if stored_name in self._files:
            raise WriteError(f"File {stored_name} already exists")
        self._files[stored_name] = value

    async def _is_readable(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
    ) -> bool:
        return stored_name in self._files

    async def _read(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
    ) -> Value:
        try:
            return self._files[stored_name]
        except KeyError as e:
            raise BlobReadError(f"File {stored_name} vanished") from e

    async def _delete(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
    ) -> bool:
        return self._files.pop(stored_name, None) is not None


class FilesystemFileRepo(FileRepo):
    async def on_startup(self, log: structlog.stdlib.BoundLogger):
        os.makedirs(self.storage_dir, exist_ok=True)
        log.info("Storage directory ready", storage_dir=self.storage_dir)

    @staticmethod
    def _is_valid_name(stored_name: str) -> bool:
        return (
            bool(stored_name)
            and stored_name not in (".", "..")
            and os.path.basename(stored_name) == stored_name
            and "\\" not in stored_name
        )

    def _get_path(self, stored_name: str) -> str:
        if not self._is_valid_name(stored_name):
            raise ValueError(f"Invalid stored name {stored_name!r}")
        return os.path.join(self.storage_dir, stored_name)

    async def _write(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
        value: Value,
    ) -> None:
        path = self._get_path(stored_name)
        try:
            # "x" refuses to clobber another blob's file
            f = open(path, "xb")
        except OSError as e:
            log.error(
                "Error creating blob file",
                path=path,
                exc_info=e,
            )
            raise WriteError(f"Error creating blob file {stored_name}") from e

        try:
            with f:
                f.write(value)
        except OSError as e:
            log.error(
                "Error writing blob file",
                path=path,
                exc_info=e,
            )
            self._remove_partial(log, path)
            raise WriteError(f"Error writing blob file {stored_name}") from e

    def _remove_partial(self, log: structlog.stdlib.BoundLogger, path: str):
        try:
            os.remove(path)
        except OSError as e:
            log.warning(
                "Could not remove partially written blob file",
                path=path,
                exc_info=e,
            )

    async def _is_readable(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
    ) -> bool:
        # a corrupted metadata row may hold anything; it never names a file here
        if not self._is_valid_name(stored_name):
            log.warning("Invalid stored name", stored_name=stored_name)
            return False
        path = self._get_path(stored_name)
        return os.path.isfile(path) and os.access(path, os.R_OK)

    async def _read(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
    ) -> Value:
        if not self._is_valid_name(stored_name):
            raise BlobReadError(f"Invalid stored name {stored_name!r}")
        path = self._get_path(stored_name)
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            log.error(
                "Error reading blob file",
                path=path,
                exc_info=e,
            )
            raise BlobReadError(f"Error reading blob file {stored_name}") from e

    async def _delete(
        self,
        log: structlog.stdlib.BoundLogger,
        stored_name: str,
    ) -> bool:
        if not self._is_valid_name(stored_name):
            return False
        path = self._get_path(stored_name)
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            log.error(
                "Error deleting physical file",
                path=path,
                exc_info=e,
            )
            raise BlobDeleteError(f"Error deleting blob file {stored_name}") from e
        return True
