"""Shared fixtures for the layerfs test suite."""

import pytest

from layerfs import MemoryFS, VfsPath
from layerfs.config import reset_settings


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Every test starts from default settings with no LAYERFS_* overrides."""
    for name in (
        "LAYERFS_COPY_BUFFER_SIZE",
        "LAYERFS_ASYNC_OFFLOAD",
        "LAYERFS_ALLOW_SYMLINK_ESCAPE",
        "LAYERFS_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def memory_fs():
    return MemoryFS()


@pytest.fixture
def root(memory_fs):
    """Root path of a fresh in-memory backend."""
    return VfsPath(memory_fs)
