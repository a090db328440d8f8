from pathlib import Path
from typing import Any

from easyblob.log_config import get_logger
from easyblob.models.blob import BlobId, BlobRecord, RetrievedBlob
from easyblob.models.config import StorageConfig
from easyblob.repos.blob_repo import BlobRepo
from easyblob.repos.file_repo import FileRepo, FilesystemFileRepo
from easyblob.repos.metadata_repo import MetadataRepo, SQLMetadataRepo
from easyblob.services.config_service import ConfigService


class EasyBlob:
    """
    Wires a storage directory and a metadata database into one `BlobRepo`.

    Example
    -------
    >>> storage = EasyBlob(StorageConfig(storage_dir="./uploads"))
    >>> await storage.on_startup()
    >>> blob_id = await storage.upload(b"hello", "a.txt", "text/plain")
    """

    def __init__(
        self,
        config: StorageConfig,
        metadata_repo: MetadataRepo | type[MetadataRepo] = SQLMetadataRepo,
        file_repo: FileRepo | type[FileRepo] = FilesystemFileRepo,
    ):
        self.log = get_logger()
        self.config = config

        if isinstance(metadata_repo, MetadataRepo):
            self.metadata_repo = metadata_repo
        else:
            self.metadata_repo = metadata_repo(
                database_url=config.database_url,
            )

        if isinstance(file_repo, FileRepo):
            self.file_repo = file_repo
        else:
            self.file_repo = file_repo(
                storage_dir=config.storage_dir,
            )

        self.blob_repo = BlobRepo(
            config=config,
            metadata_repo=self.metadata_repo,
            file_repo=self.file_repo,
        )

    async def on_startup(self):
        await self.blob_repo.on_startup(self.log)

    async def close(self):
        await self.blob_repo.close()

    @classmethod
    def from_file(
        cls,
        file: None | str | Path = None,
        metadata_repo: MetadataRepo | type[MetadataRepo] = SQLMetadataRepo,
        file_repo: FileRepo | type[FileRepo] = FilesystemFileRepo,
    ) -> "EasyBlob":
        if isinstance(file, Path):
            file = file.as_posix()
        config = ConfigService(file).load()
        return EasyBlob(
            config=config,
            metadata_repo=metadata_repo,
            file_repo=file_repo,
        )

    async def upload(self, value: bytes, original_name: str, mime_type: str) -> BlobId:
        return await self.blob_repo.create(self.log, value, original_name, mime_type)

    async def download(self, blob_id: Any) -> RetrievedBlob:
        return await self.blob_repo.retrieve(self.log, blob_id)

    async def delete(self, blob_id: Any) -> None:
        await self.blob_repo.remove(self.log, blob_id)

    async def list_files(self) -> list[BlobRecord]:
        return await self.blob_repo.list(self.log)
