"""
Abstract base class every layerfs backend implements.

All path arguments are normalized strings as produced by ``layerfs.path``:
``/`` for the root, ``/a/b`` otherwise. Backends never see '.', '..' or
repeated separators.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import BinaryIO, Iterator

from .data_models import DirEntry, VfsMetadata
from .exceptions import NotSupportedError


class FileSystem(ABC):
    """
    Backend Capability contract.

    Required operations are abstract. Optional operations raise
    NotSupportedError by default so callers can fall back to a generic
    algorithm; a read-only backend raises NotSupportedError from every
    mutating call.
    """

    @abstractmethod
    def read_dir(self, path: str) -> Iterator[DirEntry]:
        """
        Iterate over the direct children of a directory.

        Args:
            path: Directory to list

        Returns:
            Iterator of DirEntry with bare names (never containing '/')

        Raises:
            NotFoundError: If the directory does not exist
        """
        pass

    @abstractmethod
    def create_dir(self, path: str) -> None:
        """
        Create a directory. The parent must already exist.

        Raises:
            AlreadyExistsError: If an entry exists at path
            NotFoundError: If the parent is missing
        """
        pass

    @abstractmethod
    def open_file(self, path: str) -> BinaryIO:
        """Open a file for reading; returns a seekable binary handle."""
        pass

    @abstractmethod
    def create_file(self, path: str) -> BinaryIO:
        """Create or truncate a file and open it for writing."""
        pass

    @abstractmethod
    def append_file(self, path: str) -> BinaryIO:
        """Open an existing file for appending."""
        pass

    @abstractmethod
    def metadata(self, path: str) -> VfsMetadata:
        """Return metadata for the entry at path."""
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return True if a file or directory exists at path."""
        pass

    @abstractmethod
    def remove_file(self, path: str) -> None:
        """Remove a file."""
        pass

    @abstractmethod
    def remove_dir(self, path: str) -> None:
        """Remove an empty directory."""
        pass

    # === Optional capabilities ===

    def copy_file(self, src: str, dest: str) -> None:
        """Copy a file within this filesystem."""
        raise NotSupportedError(path=src)

    def move_file(self, src: str, dest: str) -> None:
        """Move a file within this filesystem."""
        raise NotSupportedError(path=src)

    def move_dir(self, src: str, dest: str) -> None:
        """Move a directory tree within this filesystem."""
        raise NotSupportedError(path=src)

    def set_creation_time(self, path: str, time: datetime) -> None:
        raise NotSupportedError("Setting the creation time is not supported", path=path)

    def set_modification_time(self, path: str, time: datetime) -> None:
        raise NotSupportedError("Setting the modification time is not supported", path=path)

    def set_access_time(self, path: str, time: datetime) -> None:
        raise NotSupportedError("Setting the access time is not supported", path=path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
