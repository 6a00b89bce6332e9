"""
Data models shared by all layerfs backends.

This module defines the file type enumeration, file metadata and the
directory entry types returned by backends and by the path layer.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .vfs_path import VfsPath


class VfsFileType(str, Enum):
    """Kind of a filesystem entry."""
    FILE = "file"
    DIRECTORY = "directory"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class VfsMetadata:
    """
    Metadata of a file or directory.

    Timestamps are None when the backend cannot tell.
    """
    file_type: VfsFileType
    len: int = 0  # Length in bytes, 0 for directories
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    accessed: Optional[datetime] = None

    @property
    def is_file(self) -> bool:
        return self.file_type is VfsFileType.FILE

    @property
    def is_dir(self) -> bool:
        return self.file_type is VfsFileType.DIRECTORY

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "file_type": self.file_type.value,
            "len": self.len,
            "created": self.created.isoformat() if self.created else None,
            "modified": self.modified.isoformat() if self.modified else None,
            "accessed": self.accessed.isoformat() if self.accessed else None,
        }


@dataclass(frozen=True)
class DirEntry:
    """A directory child as reported by a backend: bare name plus kind."""
    name: str
    file_type: VfsFileType

    @property
    def is_dir(self) -> bool:
        return self.file_type is VfsFileType.DIRECTORY


@dataclass(frozen=True)
class VfsDirEntry:
    """A directory child bound to its owning path (a VfsPath or an AsyncVfsPath)."""
    path: "VfsPath"
    file_type: VfsFileType

    @property
    def name(self) -> str:
        return self.path.filename()

    @property
    def is_dir(self) -> bool:
        return self.file_type is VfsFileType.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.file_type is VfsFileType.FILE

    def __str__(self) -> str:
        return f"VfsDirEntry(path='{self.path.as_str()}', type={self.file_type.value})"
