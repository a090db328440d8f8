import logging
import os
from tempfile import TemporaryDirectory
from unittest.mock import patch

import pytest
import tenacity
from aiohttp.test_utils import TestClient, TestServer

from easyblob.easyblob import EasyBlob
from easyblob.log_config import configure_logging, get_logger
from easyblob.models.config import StorageConfig
from easyblob.repos.blob_repo import BlobRepo
from easyblob.repos.file_repo import FilesystemFileRepo, InMemoryFileRepo
from easyblob.repos.metadata_repo import InMemoryMetadataRepo, SQLMetadataRepo
from easyblob.server import create_app

_log_history = []


def capture_processor(logger, method_name, event_dict):
    if method_name == "debug":
        return event_dict
    dict_copy = event_dict.copy()
    dict_copy["log_level"] = method_name
    _log_history.append(dict_copy)
    return event_dict


@pytest.fixture(scope="session", autouse=True)
def configure_logs():
    configure_logging(
        pretty=True, level=logging.DEBUG, additional_processors=[capture_processor]
    )


@pytest.fixture(scope="function")
def log_history():
    _log_history.clear()
    yield _log_history
    _log_history.clear()


@pytest.fixture(scope="function")
def log(log_history):
    return get_logger()


@pytest.fixture(scope="function")
def temp_dir():
    temp_dir = TemporaryDirectory()
    yield temp_dir.name
    temp_dir.cleanup()


@pytest.fixture
def storage_dir(temp_dir):
    return os.path.join(temp_dir, "uploads")


@pytest.fixture
def database_url(temp_dir):
    return f"sqlite:///{os.path.join(temp_dir, 'blob-storage.db')}"


@pytest.fixture
def storage_config(storage_dir, database_url):
    return StorageConfig(
        storage_dir=storage_dir,
        database_url=database_url,
    )


@pytest.fixture(scope="function")
async def metadata_repo(request: pytest.FixtureRequest, database_url: str, log):
    repo = request.param(database_url=database_url)
    await repo.on_startup(log)
    yield repo
    await repo.close()


@pytest.fixture(scope="function")
async def file_repo(request: pytest.FixtureRequest, storage_dir: str, log):
    repo = request.param(storage_dir=storage_dir)
    await repo.on_startup(log)
    yield repo
    await repo.close()


@pytest.fixture
async def filesystem_repo(storage_dir, log):
    repo = FilesystemFileRepo(storage_dir=storage_dir)
    await repo.on_startup(log)
    return repo


@pytest.fixture
def blob_repo_factory(storage_config, metadata_repo, filesystem_repo):
    def factory(**config_updates) -> BlobRepo:
        return BlobRepo(
            config=storage_config.model_copy(update=config_updates),
            metadata_repo=metadata_repo,
            file_repo=filesystem_repo,
        )

    return factory


@pytest.fixture
def blob_repo(blob_repo_factory):
    return blob_repo_factory()


@pytest.fixture
def mock_tenacity():
    original_retry = tenacity.retry

    def mock_tenacity(wait, **kwargs):
        return original_retry(
            wait=tenacity.wait_fixed(0),
            **kwargs,
        )

    with patch("tenacity.retry", mock_tenacity):
        yield


@pytest.fixture
def app_factory(storage_config):
    def factory(**config_updates):
        config = storage_config.model_copy(update=config_updates)
        return create_app(config, EasyBlob(config))

    return factory


@pytest.fixture
async def client_factory(app_factory):
    clients = []

    async def factory(**config_updates) -> TestClient:
        client = TestClient(TestServer(app_factory(**config_updates)))
        await client.start_server()
        clients.append(client)
        return client

    yield factory
    for client in clients:
        await client.close()


@pytest.fixture
async def client(client_factory):
    return await client_factory()


@pytest.fixture
def assert_no_errors(log_history):
    yield
    assert all(log_line["log_level"] != "error" for log_line in log_history)


def pytest_generate_tests(metafunc):
    if "metadata_repo" in metafunc.fixturenames:
        metafunc.parametrize(
            "metadata_repo",
            [InMemoryMetadataRepo, SQLMetadataRepo],
            indirect=True,
        )
    if "file_repo" in metafunc.fixturenames:
        metafunc.parametrize(
            "file_repo",
            [InMemoryFileRepo, FilesystemFileRepo],
            indirect=True,
        )
