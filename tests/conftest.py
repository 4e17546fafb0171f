import logging
import os

import pytest

from humanet_repo.core.filesystem_service import IdeaFilesystemService
from humanet_repo.core.settings import LOGGER_NAME

IDEA_ID = "idea-1"


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep settings and log files of every test inside tmp_path."""
    monkeypatch.delenv("HUMANET_STORAGE_PATH", raising=False)
    monkeypatch.delenv("STORAGE_PATH", raising=False)
    monkeypatch.setenv("HUMANET_LOG_DIR", str(tmp_path / "logs"))
    yield
    package_logger = logging.getLogger(LOGGER_NAME)
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def storage_path(tmp_path):
    return str(tmp_path / "storage" / "ideas")


@pytest.fixture
def service(storage_path):
    return IdeaFilesystemService(storage_path=storage_path)


@pytest.fixture
def repo(service):
    """A freshly scaffolded basic repository; yields its idea id."""
    service.create_repository(IDEA_ID)
    return IDEA_ID


def snapshot_tree(path):
    """Every path under path with its size, for detecting unwanted mutation."""
    result = {}
    for dirpath, dirnames, filenames in os.walk(path):
        result[dirpath] = None
        for name in filenames:
            full = os.path.join(dirpath, name)
            result[full] = os.path.getsize(full)
    return result
