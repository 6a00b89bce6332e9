"""Host filesystem backend rooted at a directory.

Calls are delegated 1:1 to the host file APIs; host errors are mapped onto
the layerfs taxonomy.
"""

from __future__ import annotations

import logging
import os
import shutil
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from .. import path as vpath
from ..config import get_settings
from ..data_models import DirEntry, VfsFileType, VfsMetadata
from ..exceptions import (
    AlreadyExistsError,
    BackendIOError,
    InvalidPathError,
    NotFoundError,
    NotSupportedError,
    OtherError,
)
from ..filesystem import FileSystem

logger = logging.getLogger(__name__)


def _timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class PhysicalFS(FileSystem):
    """Local filesystem backend rooted at a host directory.

    Resolution is confined to the root: symlinks pointing outside of it are
    rejected unless ``allow_symlink_escape`` is set.
    """

    def __init__(self, root: Path, allow_symlink_escape: Optional[bool] = None) -> None:
        """Initialize the physical backend.

        Args:
            root: The host directory that serves as the root for this backend
            allow_symlink_escape: If True, allow symlinks that point outside the root.
                                  Defaults to ``VfsSettings.allow_symlink_escape``.
        """
        if allow_symlink_escape is None:
            allow_symlink_escape = get_settings().allow_symlink_escape
        self.root = Path(root).resolve()
        self.allow_symlink_escape = allow_symlink_escape
        self.root.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Mounted host root '{self.root}'", extra={"backend": "PhysicalFS"})

    def resolve(self, path: str) -> Path:
        """Resolve a normalized virtual path to a host path inside the root.

        Raises:
            InvalidPathError: If the resolved path escapes the backend root
        """
        rel = path.lstrip("/")
        candidate = (self.root / rel).resolve(strict=False) if rel else self.root

        if not self.allow_symlink_escape:
            try:
                candidate.relative_to(self.root)
            except ValueError as exc:
                raise InvalidPathError(
                    f"Resolved path escapes backend root: {candidate}", path=path
                ) from exc

        return candidate

    @contextmanager
    def _host_errors(self, path: str):
        try:
            yield
        except FileNotFoundError as exc:
            raise NotFoundError(path=path) from exc
        except FileExistsError as exc:
            raise AlreadyExistsError(file_type=self._existing_type(path), path=path) from exc
        except IsADirectoryError as exc:
            raise OtherError("Path is a directory", path=path) from exc
        except NotADirectoryError as exc:
            raise OtherError("Path is not a directory", path=path) from exc
        except OSError as exc:
            raise BackendIOError(str(exc), os_error=exc, path=path) from exc

    def _existing_type(self, path: str) -> Optional[VfsFileType]:
        host = self.resolve(path)
        if host.is_dir():
            return VfsFileType.DIRECTORY
        if host.exists():
            return VfsFileType.FILE
        return None

    def read_dir(self, path: str) -> Iterator[DirEntry]:
        host = self.resolve(path)
        with self._host_errors(path):
            entries = [
                DirEntry(
                    child.name,
                    VfsFileType.DIRECTORY if child.is_dir() else VfsFileType.FILE,
                )
                for child in sorted(host.iterdir(), key=lambda p: p.name)
            ]
        return iter(entries)

    def create_dir(self, path: str) -> None:
        with self._host_errors(path):
            self.resolve(path).mkdir()

    def open_file(self, path: str) -> BinaryIO:
        with self._host_errors(path):
            return open(self.resolve(path), "rb")

    def create_file(self, path: str) -> BinaryIO:
        with self._host_errors(path):
            return open(self.resolve(path), "wb")

    def append_file(self, path: str) -> BinaryIO:
        host = self.resolve(path)
        with self._host_errors(path):
            if not host.exists():
                raise FileNotFoundError(path)
            # r+b rather than ab so that seek-then-write lands where the caller seeked
            handle = open(host, "r+b")
            handle.seek(0, os.SEEK_END)
            return handle

    def metadata(self, path: str) -> VfsMetadata:
        with self._host_errors(path):
            stat = self.resolve(path).stat()
        is_dir = os.path.isdir(self.resolve(path))
        return VfsMetadata(
            file_type=VfsFileType.DIRECTORY if is_dir else VfsFileType.FILE,
            len=0 if is_dir else stat.st_size,
            created=_timestamp(getattr(stat, "st_birthtime", stat.st_ctime)),
            modified=_timestamp(stat.st_mtime),
            accessed=_timestamp(stat.st_atime),
        )

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def remove_file(self, path: str) -> None:
        with self._host_errors(path):
            self.resolve(path).unlink()

    def remove_dir(self, path: str) -> None:
        if vpath.is_root(path):
            raise InvalidPathError("Cannot remove the root directory", path=path)
        host = self.resolve(path)
        with self._host_errors(path):
            if host.is_dir() and any(host.iterdir()):
                raise OtherError("Directory to remove is not empty", path=path)
            host.rmdir()

    def move_file(self, src: str, dest: str) -> None:
        target = self.resolve(dest)
        if target.exists():
            raise AlreadyExistsError(file_type=self._existing_type(dest), path=dest)
        with self._host_errors(src):
            shutil.move(str(self.resolve(src)), str(target))

    def move_dir(self, src: str, dest: str) -> None:
        self.move_file(src, dest)

    def set_creation_time(self, path: str, time: datetime) -> None:
        raise NotSupportedError("Host filesystems do not allow setting the creation time", path=path)

    def set_modification_time(self, path: str, time: datetime) -> None:
        host = self.resolve(path)
        with self._host_errors(path):
            stat = host.stat()
            os.utime(host, (stat.st_atime, time.timestamp()))

    def set_access_time(self, path: str, time: datetime) -> None:
        host = self.resolve(path)
        with self._host_errors(path):
            stat = host.stat()
            os.utime(host, (time.timestamp(), stat.st_mtime))

    def __repr__(self) -> str:
        return f"PhysicalFS(root='{self.root}')"
