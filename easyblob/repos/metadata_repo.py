import logging
from datetime import datetime, timezone
from typing import Optional

import structlog
import tenacity
from sqlalchemy import Column, DateTime, Integer, String, delete, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from easyblob.models.blob import BlobId, BlobRecord
from easyblob.models.errors import StoreError
from easyblob.utils.db_utils import (
    ensure_sqlite_parent_dir,
    get_async_db_url,
    is_in_memory_sqlite,
)
from easyblob.utils.timing_utils import Timer

# largest value an SQL BIGINT or SQLite INTEGER can hold; no row has a larger id
MAX_SQL_ID = 2**63 - 1

Base = declarative_base()


class BlobMetadataRow(Base):
    __tablename__ = "blob_metadata"
    # AUTOINCREMENT keeps sqlite from handing out the id of a deleted row again
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    original_name = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    path = Column(String, nullable=False, unique=True)
    upload_timestamp = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<BlobMetadataRow(id={self.id}, original_name={self.original_name}, path={self.path})>"


class MetadataRepo:
    """
    Durable mapping from blob id to the metadata of its file.
    """

    def __init__(self, database_url: None | str = None):
        self.database_url = database_url

    async def on_startup(self, log: structlog.stdlib.BoundLogger):
        pass

    async def close(self):
        pass

    async def insert(
        self,
        log: structlog.stdlib.BoundLogger,
        original_name: str,
        mime_type: str,
        stored_name: str,
        timestamp: datetime,
    ) -> BlobId:
        timer = Timer()
        timer.start()
        blob_id = await self._insert(
            log,
            original_name=original_name,
            mime_type=mime_type,
            stored_name=stored_name,
            timestamp=timestamp.astimezone(timezone.utc),
        )
        timer.end()
        log.info(
            "Inserted blob metadata",
            blob_id=blob_id,
            stored_name=stored_name,
            duration=timer.wall_time,
        )
        return blob_id

    async def _insert(
        self,
        log: structlog.stdlib.BoundLogger,
        original_name: str,
        mime_type: str,
        stored_name: str,
        timestamp: datetime,
    ) -> BlobId:
        raise NotImplementedError

    async def get(
        self,
        log: structlog.stdlib.BoundLogger,
        blob_id: BlobId,
    ) -> Optional[BlobRecord]:
        record = await self._get(log, blob_id)
        log.debug(
            "Fetched blob metadata",
            blob_id=blob_id,
            found=record is not None,
        )
        return record

    async def _get(
        self,
        log: structlog.stdlib.BoundLogger,
        blob_id: BlobId,
    ) -> Optional[BlobRecord]:
        raise NotImplementedError

    async def list_all(
        self,
        log: structlog.stdlib.BoundLogger,
    ) -> list[BlobRecord]:
        """
        All records, newest upload first. Equal timestamps fall back to the larger id first.
        """
        records = await self._list_all(log)
        log.info(
            "Fetched blob records",
            count=len(records),
        )
        return records

    async def _list_all(
        self,
        log: structlog.stdlib.BoundLogger,
    ) -> list[BlobRecord]:
        raise NotImplementedError

    async def delete(
        self,
        log: structlog.stdlib.BoundLogger,
        blob_id: BlobId,
    ) -> bool:
        deleted = await self._delete(log, blob_id)
        log.info(
            "Deleted blob metadata",
            blob_id=blob_id,
            deleted=deleted,
        )
        return deleted

    async def _delete(
        self,
        log: structlog.stdlib.BoundLogger,
        blob_id: BlobId,
    ) -> bool:
        raise NotImplementedError


class InMemoryMetadataRepo(MetadataRepo):
    def __init__(self, database_url: None | str = None):
        super().__init__(database_url)
        self._records: dict[BlobId, BlobRecord] = {}
        self._last_id = 0

    async def _insert(
        self,
        log: structlog.stdlib.BoundLogger,
        original_name: str,
        mime_type: str,
        stored_name: str,
        timestamp: datetime,
    ) -> BlobId:
        blob_id = self._last_id + 1
        self._records[blob_id] = BlobRecord(
            id=blob_id,
            original_name=original_name,
            mime_type=mime_type,
            path=stored_name,
            upload_timestamp=timestamp,
        )
        self._last_id = blob_id
        return blob_id

    async def _get(
        self,
        log: structlog.stdlib.BoundLogger,
        blob_id: BlobId,
    ) -> Optional[BlobRecord]:
        return self._records.get(blob_id)

    async def _list_all(
        self,
        log: structlog.stdlib.BoundLogger,
    ) -> list[BlobRecord]:
        return sorted(
            self._records.values(),
            key=lambda record: (record.upload_timestamp, record.id),
            reverse=True,
        )

    async def _delete(
        self,
        log: structlog.stdlib.BoundLogger,
        blob_id: BlobId,
    ) -> bool:
        return self._records.pop(blob_id, None) is not None


class SQLMetadataRepo(MetadataRepo):
    def __init__(self, database_url: None | str = None):
        if database_url is None:
            raise ValueError("database_url not set")
        super().__init__(database_url)

        self.url = get_async_db_url(database_url)
        if is_in_memory_sqlite(self.url):
            # every new connection would otherwise see its own empty database
            self.engine: AsyncEngine = create_async_engine(
                self.url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_async_engine(self.url)
        self.session_maker = async_sessionmaker(self.engine, expire_on_commit=False)

    async def on_startup(self, log: structlog.stdlib.BoundLogger):
        ensure_sqlite_parent_dir(self.url)
        try:
            await self._wrap_tenacity(log, self._create_schema)()
        except SQLAlchemyError as e:
            log.error(
                "Could not create blob metadata table",
                url=self.url.render_as_string(hide_password=True),
                exc_info=e,
            )
            raise StoreError("Could not create blob metadata table") from e
        log.info(
            "Blob metadata table ready",
            url=self.url.render_as_string(hide_password=True),
        )

    async def close(self):
        await self.engine.dispose()

    def _wrap_tenacity(self, log: structlog.stdlib.BoundLogger, func):
        # only startup retries; a locked database usually frees up within seconds
        return tenacity.retry(
            retry=tenacity.retry_if_exception_type(OperationalError),
            wait=tenacity.wait_exponential(multiplier=1, min=1, max=5),
            stop=tenacity.stop_after_attempt(3),
            before_sleep=tenacity.before_sleep_log(
                log.bind(func=func),  # type: ignore
                logging.WARNING,
                exc_info=True,
            ),
            reraise=True,
        )(func)

    async def _create_schema(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def _insert(
        self,
        log: structlog.stdlib.BoundLogger,
        original_name: str,
        mime_type: str,
        stored_name: str,
        timestamp: datetime,
    ) -> BlobId:
        row = BlobMetadataRow(
            original_name=original_name,
            mime_type=mime_type,
            path=stored_name,
            upload_timestamp=timestamp.replace(tzinfo=None),
        )
        try:
            async with self.session_maker() as session:
                session.add(row)
                await session.flush()
                blob_id = row.id
                await session.commit()
        except SQLAlchemyError as e:
            log.error(
                "Error inserting blob metadata into database",
                stored_name=stored_name,
                exc_info=e,
            )
            raise StoreError("Error inserting blob metadata into database") from e
        return blob_id

    async def _get(
        self,
        log: structlog.stdlib.BoundLogger,
        blob_id: BlobId,
    ) -> Optional[BlobRecord]:
        if blob_id > MAX_SQL_ID:
            return None
        try:
            async with self.session_maker() as session:
                row = await session.get(BlobMetadataRow, blob_id)
        except SQLAlchemyError as e:
            log.error(
                "Error fetching blob metadata",
                blob_id=blob_id,
                exc_info=e,
            )
            raise StoreError("Error fetching blob metadata", blob_id=blob_id) from e
        if row is None:
            return None
        return BlobRecord.model_validate(row)

    async def _list_all(
        self,
        log: structlog.stdlib.BoundLogger,
    ) -> list[BlobRecord]:
        statement = select(BlobMetadataRow).order_by(
            BlobMetadataRow.upload_timestamp.desc(),
            BlobMetadataRow.id.desc(),
        )
        try:
            async with self.session_maker() as session:
                rows = (await session.scalars(statement)).all()
        except SQLAlchemyError as e:
            log.error(
                "Error fetching all blob metadata",
                exc_info=e,
            )
            raise StoreError("Error fetching all blob metadata") from e
        return [BlobRecord.model_validate(row) for row in rows]

    async def _delete(
        self,
        log: structlog.stdlib.BoundLogger,
        blob_id: BlobId,
    ) -> bool:
        if blob_id > MAX_SQL_ID:
            return False
        statement = delete(BlobMetadataRow).where(BlobMetadataRow.id == blob_id)
        try:
            async with self.session_maker() as session:
                result = await session.execute(statement)
                await session.commit()
        except SQLAlchemyError as e:
            log.error(
                "Error deleting blob metadata",
                blob_id=blob_id,
                exc_info=e,
            )
            raise StoreError("Error deleting blob metadata", blob_id=blob_id) from e
        return result.rowcount > 0
