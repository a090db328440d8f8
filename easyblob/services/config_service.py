import os
from typing import Any

import yaml

from easyblob.models.config import StorageConfig
from easyblob.utils.env_utils import get_setting

# fields that may be overridden by `EASYBLOB_<FIELD>` settings
OVERRIDABLE_FIELDS = (
    "storage_dir",
    "database_url",
    "max_file_size",
    "allowed_mime_types",
    "host",
    "port",
)


class ConfigService:
    def __init__(self, filename: None | str = None, secrets_dir: str = "/run/secrets"):
        if filename is not None and not os.path.exists(filename):
            raise FileNotFoundError(f"Could not find {filename}")
        self.filename = filename
        self.secrets_dir = secrets_dir

    def load(self) -> StorageConfig:
        """
        Defaults, then the YAML file (if any), then environment settings, later ones winning.
        """
        data = self._load_config_file()
        data |= self._load_overrides()
        return StorageConfig.model_validate(data)

    def _load_config_file(self) -> dict[str, Any]:
        if self.filename is None:
            return {}
        with open(self.filename, "r") as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.filename} must contain a mapping")
        return data

    def _load_overrides(self) -> dict[str, Any]:
        overrides = {}
        for field in OVERRIDABLE_FIELDS:
            value = get_setting(field, secrets_dir=self.secrets_dir)
            if value is not None:
                overrides[field] = value
        return overrides
