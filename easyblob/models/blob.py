from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


BlobId = int


class BlobRecord(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
    )

    id: BlobId = Field(gt=0)
    original_name: str = Field(description="Client-supplied filename, display only")
    mime_type: str
    path: str = Field(description="System-generated on-disk filename")
    upload_timestamp: datetime

    @field_validator("upload_timestamp")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # sqlite hands back naive datetimes; they are always stored as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def stored_name(self) -> str:
        return self.path


class RetrievedBlob(BaseModel):
    model_config = ConfigDict(
        frozen=True,
    )

    record: BlobRecord
    content: bytes

    @property
    def mime_type(self) -> str:
        return self.record.mime_type
