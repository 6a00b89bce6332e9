"""Async form of the layerfs path and backend API."""

from .filesystem import (
    AsyncAltrootFS,
    AsyncFileHandle,
    AsyncFileSystem,
    AsyncFileSystemAdapter,
    AsyncMemoryFS,
    AsyncOverlayFS,
    AsyncPhysicalFS,
)
from .path import AsyncVfsPath

__all__ = [
    "AsyncAltrootFS",
    "AsyncFileHandle",
    "AsyncFileSystem",
    "AsyncFileSystemAdapter",
    "AsyncMemoryFS",
    "AsyncOverlayFS",
    "AsyncPhysicalFS",
    "AsyncVfsPath",
]
