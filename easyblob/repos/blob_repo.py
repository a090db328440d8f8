from datetime import datetime, timezone
from typing import Any

import structlog

from easyblob.models.blob import BlobId, BlobRecord, RetrievedBlob
from easyblob.models.config import StorageConfig
from easyblob.models.errors import (
    FileMissingError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from easyblob.repos.file_repo import FileRepo
from easyblob.repos.metadata_repo import MetadataRepo
from easyblob.utils.naming_utils import StoredNameGenerator
from easyblob.utils.timing_utils import Timer
from easyblob.utils.validation_utils import parse_blob_id, validate_upload


class BlobRepo:
    """
    Keeps blob files and their metadata rows in agreement.

    The two substrates are never written transactionally. On create the file is written
    before the row, on remove the file is deleted before the row, so a partial failure
    leaves either a file without a row (ignored) or a row without a file (reported as
    `FileMissingError` on retrieval). Neither is repaired here.
    """

    def __init__(
        self,
        config: StorageConfig,
        metadata_repo: MetadataRepo,
        file_repo: FileRepo,
        name_generator: None | StoredNameGenerator = None,
    ):
        self.config = config
        self.metadata_repo = metadata_repo
        self.file_repo = file_repo
        self.name_generator = name_generator or StoredNameGenerator()

    async def on_startup(self, log: structlog.stdlib.BoundLogger):
        await self.file_repo.on_startup(log)
        await self.metadata_repo.on_startup(log)

    async def close(self):
        await self.metadata_repo.close()
        await self.file_repo.close()

    async def create(
        self,
        log: structlog.stdlib.BoundLogger,
        value: bytes,
        original_name: str,
        mime_type: str,
    ) -> BlobId:
        log = log.bind(original_name=original_name, mime_type=mime_type)

        reason = validate_upload(
            size_bytes=len(value),
            mime_type=mime_type,
            size_limit=self.config.max_file_size,
            allowed_mime_types=self.config.allowed_mime_types,
        )
        if reason is not None:
            log.info(
                "Rejected upload",
                reason=reason.value,
                size=len(value),
            )
            raise ValidationError(reason, size_bytes=len(value), mime_type=mime_type)

        timer = Timer()
        timer.start()
        stored_name = self.name_generator.derive_stored_name(original_name)
        await self.file_repo.write(log, stored_name, value)
        try:
            blob_id = await self.metadata_repo.insert(
                log,
                original_name=original_name,
                mime_type=mime_type,
                stored_name=stored_name,
                timestamp=datetime.now(timezone.utc),
            )
        except StoreError:
            log.error(
                "Blob file has no metadata row and is orphaned",
                stored_name=stored_name,
            )
            raise
        timer.end()

        log.info(
            "Created blob",
            blob_id=blob_id,
            stored_name=stored_name,
            size=len(value),
            duration=timer.wall_time,
        )
        return blob_id

    async def _get_record(
        self,
        log: structlog.stdlib.BoundLogger,
        blob_id: BlobId,
    ) -> BlobRecord:
        record = await self.metadata_repo.get(log, blob_id)
        if record is None:
            raise NotFoundError(f"Blob {blob_id} not found", blob_id=blob_id)
        return record

    async def retrieve(
        self,
        log: structlog.stdlib.BoundLogger,
        blob_id: Any,
    ) -> RetrievedBlob:
        blob_id = parse_blob_id(blob_id)
        log = log.bind(blob_id=blob_id)

        record = await self._get_record(log, blob_id)
        if not await self.file_repo.is_readable(log, record.path):
            log.error(
                "Blob metadata points at a missing file",
                stored_name=record.path,
            )
            raise FileMissingError(
                f"File {record.path} of blob {blob_id} is missing", blob_id=blob_id
            )

        # a concurrent remove may still pull the file away here; that is a BlobReadError
        content = await self.file_repo.read(log, record.path)
        log.info(
            "Retrieved blob",
            stored_name=record.path,
            mime_type=record.mime_type,
        )
        return RetrievedBlob(record=record, content=content)

    async def remove(
        self,
        log: structlog.stdlib.BoundLogger,
        blob_id: Any,
    ) -> None:
        blob_id = parse_blob_id(blob_id)
        log = log.bind(blob_id=blob_id)

        record = await self._get_record(log, blob_id)

        # the row must outlive the file, so a failed unlink keeps it
        existed = await self.file_repo.delete(log, record.path)
        if not existed:
            log.warning(
                "Blob file was already missing, removing its metadata row",
                stored_name=record.path,
            )

        if not await self.metadata_repo.delete(log, blob_id):
            raise NotFoundError(f"Blob {blob_id} not found", blob_id=blob_id)

        log.info(
            "Removed blob",
            stored_name=record.path,
        )

    async def list(
        self,
        log: structlog.stdlib.BoundLogger,
    ) -> list[BlobRecord]:
        return await self.metadata_repo.list_all(log)
