"""
layerfs - Layered Virtual Filesystem

A virtual filesystem with pluggable backends: in-memory trees, host
directories, static asset tables, root-translated views and read-through
union overlays, usable from blocking and asyncio code alike.

License: Apache-2.0
"""

__version__ = "0.1.0"

# Paths and backends
from .vfs_path import VfsPath
from .filesystem import FileSystem
from .backends import (
    AltrootFS,
    EmbeddedFS,
    MemoryFS,
    OverlayFS,
    PhysicalFS,
)

# Async form
from .async_vfs import (
    AsyncAltrootFS,
    AsyncFileHandle,
    AsyncFileSystem,
    AsyncFileSystemAdapter,
    AsyncMemoryFS,
    AsyncOverlayFS,
    AsyncPhysicalFS,
    AsyncVfsPath,
)

# Data models
from .data_models import DirEntry, VfsDirEntry, VfsFileType, VfsMetadata

# Errors
from .exceptions import (
    AlreadyExistsError,
    BackendIOError,
    ErrorKind,
    InvalidPathError,
    NotFoundError,
    NotSupportedError,
    OtherError,
    VfsError,
)

# Configuration and logging
from .config import VfsSettings, configure, get_settings
from .path import normalize
from .utils import init_vfs_logging

__all__ = [
    # Version
    "__version__",
    # Paths and backends
    "VfsPath",
    "FileSystem",
    "AltrootFS",
    "EmbeddedFS",
    "MemoryFS",
    "OverlayFS",
    "PhysicalFS",
    # Async
    "AsyncAltrootFS",
    "AsyncFileHandle",
    "AsyncFileSystem",
    "AsyncFileSystemAdapter",
    "AsyncMemoryFS",
    "AsyncOverlayFS",
    "AsyncPhysicalFS",
    "AsyncVfsPath",
    # Data models
    "DirEntry",
    "VfsDirEntry",
    "VfsFileType",
    "VfsMetadata",
    # Errors
    "AlreadyExistsError",
    "BackendIOError",
    "ErrorKind",
    "InvalidPathError",
    "NotFoundError",
    "NotSupportedError",
    "OtherError",
    "VfsError",
    # Configuration and logging
    "VfsSettings",
    "configure",
    "get_settings",
    "init_vfs_logging",
    "normalize",
]
