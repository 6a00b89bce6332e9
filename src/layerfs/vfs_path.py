"""Backend-bound virtual paths.

A VfsPath pairs a backend with a normalized path string. Navigation is pure
and never touches the backend; every other operation resolves to one or more
Backend Capability calls.

Example:
    >>> from layerfs import MemoryFS, VfsPath
    >>> root = VfsPath(MemoryFS())
    >>> root.join("docs/readme.txt").as_str()
    '/docs/readme.txt'
"""

from __future__ import annotations

import logging
import shutil
from contextlib import contextmanager
from datetime import datetime
from typing import BinaryIO, Iterator, Optional, Tuple

from . import path as vpath
from .config import VfsSettings, get_settings
from .data_models import VfsDirEntry, VfsFileType, VfsMetadata
from .exceptions import (
    AlreadyExistsError,
    InvalidPathError,
    NotFoundError,
    NotSupportedError,
    OtherError,
    VfsError,
)
from .filesystem import FileSystem
from .utils import backend_name

logger = logging.getLogger(__name__)


@contextmanager
def error_context(path: str, message: str):
    """Attach a path and a context line to any VfsError raised inside the block."""
    try:
        yield
    except VfsError as exc:
        exc.with_path(path).with_context(message)
        raise


class BaseVfsPath:
    """Navigation shared by the blocking and the async path types.

    Holds a backend reference and a normalized path string. Nothing here
    touches the backend. Two paths are equal when they hold the same
    normalized path on the very same backend object.
    """

    __slots__ = ("_fs", "_path", "_settings")

    _backend_type: type = object

    def __init__(self, filesystem, settings: Optional[VfsSettings] = None) -> None:
        """Create the root path of ``filesystem``.

        Args:
            filesystem: The backend this path is bound to
            settings: Optional settings (defaults to the process-wide ones)
        """
        if not isinstance(filesystem, self._backend_type):
            raise TypeError(
                f"filesystem must implement {self._backend_type.__name__}, "
                f"got {type(filesystem).__name__}"
            )
        self._fs = filesystem
        self._path = vpath.ROOT
        self._settings = settings

    @classmethod
    def _bound(cls, filesystem, path: str, settings: Optional[VfsSettings]):
        assert path == vpath.normalize(path), f"unnormalized path: {path!r}"
        instance = cls.__new__(cls)
        instance._fs = filesystem
        instance._path = path
        instance._settings = settings
        return instance

    def _with_path(self, path: str):
        return type(self)._bound(self._fs, path, self._settings)

    @property
    def filesystem(self):
        return self._fs

    @property
    def settings(self) -> VfsSettings:
        return self._settings or get_settings()

    @property
    def segments(self) -> Tuple[str, ...]:
        return vpath.split_segments(self._path)

    def as_str(self) -> str:
        return self._path

    def join(self, path: str):
        """Resolve ``path`` relative to this path (absolute input starts from the root).

        Raises:
            InvalidPathError: If the path escapes the root or is malformed
        """
        return self._with_path(vpath.join(self._path, path))

    def root(self):
        return self._with_path(vpath.ROOT)

    def is_root(self) -> bool:
        return vpath.is_root(self._path)

    def parent(self):
        """Parent path, or None for the root."""
        parent = vpath.parent_of(self._path)
        return None if parent is None else self._with_path(parent)

    def filename(self) -> str:
        return vpath.filename_of(self._path)

    def extension(self) -> Optional[str]:
        return vpath.extension_of(self._path)

    def _child(self, name: str):
        return self._with_path(vpath.child_of(self._path, name))

    def _relative_target(self, destination, source_path: str):
        return destination.join(vpath.relative_to(self._path, source_path))

    def _is_nested_in_self(self, destination) -> bool:
        return self._fs is destination._fs and destination._path.startswith(
            self._path.rstrip("/") + "/"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BaseVfsPath) or type(other) is not type(self):
            return NotImplemented
        return self._path == other._path and self._fs is other._fs

    def __hash__(self) -> int:
        return hash((self._path, id(self._fs)))

    def __str__(self) -> str:
        return self._path

    def __repr__(self) -> str:
        return f"{type(self).__name__}('{self._path}', fs={self._fs!r})"


class VfsPath(BaseVfsPath):
    """A virtual filesystem path identifying one file or directory of a backend.

    Instances are immutable and cheap to copy; every operation besides
    navigation is a blocking call into the backend.
    """

    __slots__ = ()

    _backend_type = FileSystem

    # === Queries ===

    def exists(self) -> bool:
        with error_context(self._path, "Could not check existence"):
            return self._fs.exists(self._path)

    def metadata(self) -> VfsMetadata:
        with error_context(self._path, "Could not get metadata"):
            return self._fs.metadata(self._path)

    def is_file(self) -> bool:
        if not self.exists():
            return False
        return self.metadata().file_type is VfsFileType.FILE

    def is_dir(self) -> bool:
        if not self.exists():
            return False
        return self.metadata().file_type is VfsFileType.DIRECTORY

    # === Directories ===

    def _ensure_parent(self, action: str) -> None:
        """Checks that the parent of this path is an existing directory."""
        parent = self.parent()
        if parent is None:
            raise AlreadyExistsError(
                f"Could not {action}, the root always exists",
                file_type=VfsFileType.DIRECTORY,
                path=self._path,
            )
        if not parent.exists():
            raise NotFoundError(
                f"Could not {action}, parent directory does not exist", path=self._path
            )
        if parent.metadata().file_type is not VfsFileType.DIRECTORY:
            raise OtherError(
                f"Could not {action}, parent path is not a directory", path=self._path
            )

    def create_dir(self) -> None:
        """Create this directory; the parent must exist and the path must not."""
        self._ensure_parent("create directory")
        with error_context(self._path, "Could not create directory"):
            self._fs.create_dir(self._path)

    def create_dir_all(self) -> None:
        """Create this directory and every missing ancestor.

        Idempotent and tolerant of concurrent creators: a directory appearing
        between the existence check and the create counts as success.
        """
        if self.is_root():
            return
        for directory in vpath.ancestors(self._path) + [self._path]:
            with error_context(directory, f"Could not create directories at '{self._path}'"):
                if self._fs.exists(directory):
                    if self._fs.metadata(directory).file_type is not VfsFileType.DIRECTORY:
                        raise AlreadyExistsError(
                            "A file is in the way", file_type=VfsFileType.FILE, path=directory
                        )
                    continue
                try:
                    self._fs.create_dir(directory)
                except AlreadyExistsError as exc:
                    file_type = exc.file_type or self._fs.metadata(directory).file_type
                    if file_type is not VfsFileType.DIRECTORY:
                        raise
                    logger.debug(
                        f"Directory '{directory}' appeared concurrently",
                        extra={"backend": backend_name(self._fs)},
                    )

    def read_dir(self) -> Iterator[VfsDirEntry]:
        """Lazily iterate over the direct children of this directory.

        The backend is queried immediately, so a missing directory fails here
        rather than on first iteration.
        """
        with error_context(self._path, "Could not read directory"):
            entries = self._fs.read_dir(self._path)
        return (
            VfsDirEntry(self._child(entry.name), entry.file_type)
            for entry in entries
        )

    def walk_dir(self) -> Iterator[VfsDirEntry]:
        """Recursively iterate over everything below this directory.

        Depth-first, pre-order: each directory is yielded right before its
        children, children in backend order. Every call starts a new walk.
        """
        return self._walk(self.read_dir())

    @staticmethod
    def _walk(entries: Iterator[VfsDirEntry]) -> Iterator[VfsDirEntry]:
        stack = [entries]
        while stack:
            entry = next(stack[-1], None)
            if entry is None:
                stack.pop()
                continue
            yield entry
            if entry.is_dir:
                stack.append(entry.path.read_dir())

    def remove_dir(self) -> None:
        """Remove this directory, which must be empty."""
        with error_context(self._path, "Could not remove directory"):
            self._fs.remove_dir(self._path)

    def remove_dir_all(self) -> None:
        """Remove this directory and its contents; absent directories are fine."""
        if not self.exists():
            return
        for entry in list(self.read_dir()):
            if entry.is_dir:
                entry.path.remove_dir_all()
            else:
                entry.path.remove_file()
        self.remove_dir()

    # === Files ===

    def open_file(self) -> BinaryIO:
        with error_context(self._path, "Could not open file"):
            return self._fs.open_file(self._path)

    def create_file(self) -> BinaryIO:
        """Create or truncate this file; the parent directory must exist."""
        self._ensure_parent("create file")
        with error_context(self._path, "Could not create file"):
            return self._fs.create_file(self._path)

    def append_file(self) -> BinaryIO:
        with error_context(self._path, "Could not open file for appending"):
            return self._fs.append_file(self._path)

    def remove_file(self) -> None:
        with error_context(self._path, "Could not remove file"):
            self._fs.remove_file(self._path)

    def read_to_bytes(self) -> bytes:
        if self.metadata().file_type is not VfsFileType.FILE:
            raise OtherError("Could not read path, it is a directory", path=self._path)
        with self.open_file() as handle:
            return handle.read()

    def read_to_string(self, encoding: str = "utf-8") -> str:
        data = self.read_to_bytes()
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as exc:
            raise OtherError(
                f"Could not read path, content is not valid {encoding}", path=self._path
            ) from exc

    def write_bytes(self, data: bytes) -> None:
        with self.create_file() as handle:
            handle.write(data)

    def write_text(self, text: str, encoding: str = "utf-8") -> None:
        self.write_bytes(text.encode(encoding))

    # === Time metadata ===

    def set_creation_time(self, time: datetime) -> None:
        with error_context(self._path, "Could not set creation time"):
            self._fs.set_creation_time(self._path, time)

    def set_modification_time(self, time: datetime) -> None:
        with error_context(self._path, "Could not set modification time"):
            self._fs.set_modification_time(self._path, time)

    def set_access_time(self, time: datetime) -> None:
        with error_context(self._path, "Could not set access time"):
            self._fs.set_access_time(self._path, time)

    # === Composed operations ===

    def _check_destination(self, destination: "VfsPath") -> None:
        if destination.exists():
            raise AlreadyExistsError("Destination exists already", path=destination._path)

    def _stream_to(self, destination: "VfsPath") -> None:
        with self.open_file() as source, destination.create_file() as target:
            shutil.copyfileobj(source, target, self.settings.copy_buffer_size)

    def copy_file(self, destination: "VfsPath") -> None:
        """Copy this file to ``destination``, which must not exist yet."""
        with error_context(self._path, f"Could not copy '{self._path}' to '{destination._path}'"):
            self._check_destination(destination)
            if self._fs is destination._fs:
                try:
                    self._fs.copy_file(self._path, destination._path)
                    return
                except NotSupportedError:
                    pass
            self._stream_to(destination)

    def move_file(self, destination: "VfsPath") -> None:
        """Move this file to ``destination``, which must not exist yet."""
        with error_context(self._path, f"Could not move '{self._path}' to '{destination._path}'"):
            self._check_destination(destination)
            if self._fs is destination._fs:
                try:
                    self._fs.move_file(self._path, destination._path)
                    return
                except NotSupportedError:
                    pass
            self._stream_to(destination)
            self.remove_file()

    def _check_not_nested(self, destination: "VfsPath") -> None:
        if self._is_nested_in_self(destination):
            raise InvalidPathError(
                "Cannot copy or move a directory into itself", path=destination._path
            )

    def _copy_tree(self, destination: "VfsPath") -> int:
        destination.create_dir()
        copied = 0
        for entry in self.walk_dir():
            target = self._relative_target(destination, entry.path.as_str())
            if entry.is_dir:
                target.create_dir()
            else:
                entry.path.copy_file(target)
            copied += 1
        return copied

    def copy_dir(self, destination: "VfsPath") -> int:
        """Recursively copy this directory to ``destination``.

        Returns:
            The number of files and directories copied
        """
        with error_context(
            self._path, f"Could not copy directory '{self._path}' to '{destination._path}'"
        ):
            self._check_destination(destination)
            self._check_not_nested(destination)
            copied = self._copy_tree(destination)
        logger.debug(
            f"Copied {copied} entries from '{self._path}' to '{destination._path}'",
            extra={"backend": backend_name(self._fs)},
        )
        return copied

    def move_dir(self, destination: "VfsPath") -> None:
        """Recursively move this directory to ``destination``."""
        with error_context(
            self._path, f"Could not move directory '{self._path}' to '{destination._path}'"
        ):
            self._check_destination(destination)
            self._check_not_nested(destination)
            if self._fs is destination._fs:
                try:
                    self._fs.move_dir(self._path, destination._path)
                    return
                except NotSupportedError:
                    pass
            self._copy_tree(destination)
            self.remove_dir_all()

