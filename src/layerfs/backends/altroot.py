"""A filesystem rooted at a fixed directory of another filesystem.

Similar to a chroot but done purely by path manipulation, so it must not be
relied on for security.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import TYPE_CHECKING, BinaryIO, Iterator

from .. import path as vpath
from ..data_models import DirEntry, VfsFileType, VfsMetadata
from ..exceptions import AlreadyExistsError, InvalidPathError, OtherError, VfsError
from ..filesystem import FileSystem

if TYPE_CHECKING:
    from ..vfs_path import VfsPath

logger = logging.getLogger(__name__)


class AltrootFS(FileSystem):
    """Root-translating backend.

    Every inbound path is placed under ``prefix`` before reaching the inner
    backend; paths recorded on errors are translated back. Nested instances
    compose: ``AltrootFS(AltrootFS(fs, "/a"), "/b")`` sees what
    ``AltrootFS(fs, "/a/b")`` sees.
    """

    def __init__(self, inner: FileSystem, prefix: str = "/", create_prefix: bool = True) -> None:
        """Initialize the root-translating backend.

        Args:
            inner: The wrapped backend
            prefix: Directory of ``inner`` that becomes this backend's root;
                    normalized with the usual path rules
            create_prefix: Create missing prefix directories in ``inner``

        Raises:
            InvalidPathError: If the prefix escapes the root
            OtherError: If something other than a directory sits at the prefix
        """
        if not isinstance(inner, FileSystem):
            raise TypeError(f"inner must implement FileSystem, got {type(inner).__name__}")
        self._inner = inner
        self._prefix = vpath.normalize(prefix)
        if create_prefix:
            self._create_prefix()

    @classmethod
    def from_path(cls, root: "VfsPath", create_prefix: bool = True) -> "AltrootFS":
        """Root a new backend at the location of an existing VfsPath."""
        return cls(root.filesystem, root.as_str(), create_prefix=create_prefix)

    @property
    def inner(self) -> FileSystem:
        return self._inner

    @property
    def prefix(self) -> str:
        return self._prefix

    def _create_prefix(self) -> None:
        for directory in vpath.ancestors(self._prefix) + [self._prefix]:
            if vpath.is_root(directory):
                continue
            if self._inner.exists(directory):
                if self._inner.metadata(directory).file_type is not VfsFileType.DIRECTORY:
                    raise OtherError("Root prefix is not a directory", path=directory)
                continue
            try:
                self._inner.create_dir(directory)
            except AlreadyExistsError:
                pass
            logger.debug(
                f"Created root prefix directory '{directory}'",
                extra={"backend": "AltrootFS"},
            )

    def _inner_path(self, path: str) -> str:
        return vpath.concat(self._prefix, path)

    @contextmanager
    def _translate_errors(self):
        try:
            yield
        except VfsError as exc:
            if exc.path is not None:
                try:
                    exc.path = vpath.strip_prefix(self._prefix, exc.path)
                except InvalidPathError:
                    pass
            raise

    def read_dir(self, path: str) -> Iterator[DirEntry]:
        with self._translate_errors():
            return self._inner.read_dir(self._inner_path(path))

    def create_dir(self, path: str) -> None:
        with self._translate_errors():
            self._inner.create_dir(self._inner_path(path))

    def open_file(self, path: str) -> BinaryIO:
        with self._translate_errors():
            return self._inner.open_file(self._inner_path(path))

    def create_file(self, path: str) -> BinaryIO:
        with self._translate_errors():
            return self._inner.create_file(self._inner_path(path))

    def append_file(self, path: str) -> BinaryIO:
        with self._translate_errors():
            return self._inner.append_file(self._inner_path(path))

    def metadata(self, path: str) -> VfsMetadata:
        with self._translate_errors():
            return self._inner.metadata(self._inner_path(path))

    def exists(self, path: str) -> bool:
        with self._translate_errors():
            return self._inner.exists(self._inner_path(path))

    def remove_file(self, path: str) -> None:
        with self._translate_errors():
            self._inner.remove_file(self._inner_path(path))

    def remove_dir(self, path: str) -> None:
        if vpath.is_root(path):
            raise InvalidPathError("Cannot remove the root directory", path=path)
        with self._translate_errors():
            self._inner.remove_dir(self._inner_path(path))

    def copy_file(self, src: str, dest: str) -> None:
        with self._translate_errors():
            self._inner.copy_file(self._inner_path(src), self._inner_path(dest))

    def move_file(self, src: str, dest: str) -> None:
        with self._translate_errors():
            self._inner.move_file(self._inner_path(src), self._inner_path(dest))

    def move_dir(self, src: str, dest: str) -> None:
        if vpath.is_root(src):
            raise InvalidPathError("Cannot move the root directory", path=src)
        with self._translate_errors():
            self._inner.move_dir(self._inner_path(src), self._inner_path(dest))

    def set_creation_time(self, path: str, time: datetime) -> None:
        with self._translate_errors():
            self._inner.set_creation_time(self._inner_path(path), time)

    def set_modification_time(self, path: str, time: datetime) -> None:
        with self._translate_errors():
            self._inner.set_modification_time(self._inner_path(path), time)

    def set_access_time(self, path: str, time: datetime) -> None:
        with self._translate_errors():
            self._inner.set_access_time(self._inner_path(path), time)

    def __repr__(self) -> str:
        return f"AltrootFS(prefix='{self._prefix}', inner={self._inner!r})"
