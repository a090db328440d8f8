import pydantic
from pydantic import ConfigDict, Field, field_validator


DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


class StrictModel(pydantic.BaseModel):
    model_config = ConfigDict(
        extra="forbid",
    )


class StorageConfig(StrictModel):
    """
    Settings of one blob storage root, fixed at service startup.
    """

    storage_dir: str = Field(
        default="uploads",
        description="Directory where uploaded files are stored",
    )
    database_url: str = Field(
        default="sqlite:///blob-storage.db",
        description="SQLAlchemy URL of the metadata database",
    )
    max_file_size: int = Field(
        default=DEFAULT_MAX_FILE_SIZE,
        ge=0,
        description="Maximum accepted upload size in bytes",
    )
    allowed_mime_types: list[str] = Field(
        default_factory=list,
        description="MIME types accepted for upload; empty allows every type",
    )
    host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP service binds to",
    )
    port: int = Field(
        default=3000,
        gt=0,
        lt=65536,
        description="Port the HTTP service listens on",
    )

    @field_validator("allowed_mime_types", mode="before")
    @classmethod
    def _split_mime_types(cls, value):
        # environment overrides arrive as a comma-separated string
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value
