import os
from unittest.mock import patch

import pydantic
import pytest

from easyblob.models.config import DEFAULT_MAX_FILE_SIZE, StorageConfig
from easyblob.services.config_service import ConfigService
from easyblob.utils.env_utils import get_setting


@pytest.fixture
def secrets_dir(temp_dir):
    path = os.path.join(temp_dir, "secrets")
    os.makedirs(path)
    return path


@pytest.fixture
def clean_env():
    env = {k: v for k, v in os.environ.items() if not k.startswith("EASYBLOB_")}
    with patch.dict(os.environ, env, clear=True):
        yield


@pytest.fixture
def config_file(temp_dir):
    path = os.path.join(temp_dir, "easyblob.yaml")
    with open(path, "w") as f:
        f.write(
            """
storage_dir: /var/lib/easyblob
max_file_size: 1024
allowed_mime_types:
  - image/png
  - image/jpeg
"""
        )
    return path


def test_defaults():
    config = StorageConfig()
    assert config.storage_dir == "uploads"
    assert config.database_url == "sqlite:///blob-storage.db"
    assert config.max_file_size == DEFAULT_MAX_FILE_SIZE == 10485760
    assert config.allowed_mime_types == []
    assert config.port == 3000


def test_unknown_field_rejected():
    with pytest.raises(pydantic.ValidationError):
        StorageConfig(storage_directory="typo")


def test_negative_size_rejected():
    with pytest.raises(pydantic.ValidationError):
        StorageConfig(max_file_size=-1)


def test_mime_types_from_string():
    config = StorageConfig(allowed_mime_types="image/png, image/jpeg,")
    assert config.allowed_mime_types == ["image/png", "image/jpeg"]


def test_load_file(clean_env, config_file, secrets_dir):
    config = ConfigService(config_file, secrets_dir=secrets_dir).load()
    assert config.storage_dir == "/var/lib/easyblob"
    assert config.max_file_size == 1024
    assert config.allowed_mime_types == ["image/png", "image/jpeg"]
    assert config.database_url == "sqlite:///blob-storage.db"


def test_load_without_file(clean_env, secrets_dir):
    assert ConfigService(secrets_dir=secrets_dir).load() == StorageConfig()


def test_load_missing_file():
    with pytest.raises(FileNotFoundError):
        ConfigService("does/not/exist.yaml")


def test_load_empty_file(clean_env, temp_dir, secrets_dir):
    path = os.path.join(temp_dir, "empty.yaml")
    open(path, "w").close()
    assert ConfigService(path, secrets_dir=secrets_dir).load() == StorageConfig()


def test_load_non_mapping_file(clean_env, temp_dir, secrets_dir):
    path = os.path.join(temp_dir, "list.yaml")
    with open(path, "w") as f:
        f.write("- a\n- b\n")
    with pytest.raises(ValueError):
        ConfigService(path, secrets_dir=secrets_dir).load()


def test_environment_overrides_file(clean_env, config_file, secrets_dir):
    with patch.dict(
        os.environ,
        {
            "EASYBLOB_PORT": "8080",
            "EASYBLOB_MAX_FILE_SIZE": "2048",
            "EASYBLOB_ALLOWED_MIME_TYPES": "text/plain",
        },
    ):
        config = ConfigService(config_file, secrets_dir=secrets_dir).load()
    assert config.port == 8080
    assert config.max_file_size == 2048
    assert config.allowed_mime_types == ["text/plain"]
    assert config.storage_dir == "/var/lib/easyblob"


def test_secret_file_wins_over_environment(clean_env, secrets_dir):
    with open(os.path.join(secrets_dir, "easyblob_database_url"), "w") as f:
        f.write("postgresql://user:pw@db/blobs\n")
    with patch.dict(os.environ, {"EASYBLOB_DATABASE_URL": "sqlite:///other.db"}):
        assert (
            get_setting("database_url", secrets_dir=secrets_dir)
            == "postgresql://user:pw@db/blobs"
        )
        config = ConfigService(secrets_dir=secrets_dir).load()
    assert config.database_url == "postgresql://user:pw@db/blobs"


def test_get_setting_unset(clean_env, secrets_dir):
    assert get_setting("storage_dir", secrets_dir=secrets_dir) is None
