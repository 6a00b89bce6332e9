"""Read-only backend over an injected table of static assets.

The table maps file paths to their bytes; directories are implied by the
file paths. Every mutating call fails with NotSupportedError.
"""

from __future__ import annotations

import io
from datetime import datetime
from typing import BinaryIO, Dict, Iterator, Mapping, Optional

from .. import path as vpath
from ..data_models import DirEntry, VfsFileType, VfsMetadata
from ..exceptions import NotFoundError, NotSupportedError, OtherError
from ..filesystem import FileSystem


class EmbeddedFS(FileSystem):
    """Static-asset backend.

    Example:
        >>> assets = EmbeddedFS({"/templates/base.html": b"<html></html>"})
        >>> [entry.name for entry in assets.read_dir("/")]
        ['templates']
    """

    def __init__(self, assets: Mapping[str, bytes], timestamp: Optional[datetime] = None) -> None:
        """Initialize the static-asset backend.

        Args:
            assets: Mapping of file path to content; paths are normalized
            timestamp: Fixed time reported as created/modified for every entry
        """
        self._files: Dict[str, bytes] = {}
        self._directories: Dict[str, Dict[str, VfsFileType]] = {vpath.ROOT: {}}
        self._timestamp = timestamp
        for raw_path, content in assets.items():
            file_path = vpath.normalize(raw_path)
            if vpath.is_root(file_path):
                raise ValueError("An asset cannot live at the root path")
            self._files[file_path] = bytes(content)
            self._register(file_path, VfsFileType.FILE)

    def _register(self, path: str, file_type: VfsFileType) -> None:
        parent = vpath.parent_of(path)
        name = vpath.filename_of(path)
        if parent not in self._directories:
            self._directories[parent] = {}
            self._register(parent, VfsFileType.DIRECTORY)
        if self._directories[parent].get(name, file_type) is not file_type:
            raise ValueError(f"Asset path {path!r} is both a file and a directory")
        self._directories[parent][name] = file_type

    def _read_only(self, path: str):
        return NotSupportedError("EmbeddedFS is read-only", path=path)

    def read_dir(self, path: str) -> Iterator[DirEntry]:
        if path in self._files:
            raise OtherError("Path is not a directory", path=path)
        children = self._directories.get(path)
        if children is None:
            raise NotFoundError(path=path)
        return iter([DirEntry(name, file_type) for name, file_type in children.items()])

    def open_file(self, path: str) -> BinaryIO:
        if path in self._directories:
            raise OtherError("Path is a directory", path=path)
        content = self._files.get(path)
        if content is None:
            raise NotFoundError(path=path)
        return io.BytesIO(content)

    def metadata(self, path: str) -> VfsMetadata:
        if path in self._files:
            return VfsMetadata(
                file_type=VfsFileType.FILE,
                len=len(self._files[path]),
                created=self._timestamp,
                modified=self._timestamp,
            )
        if path in self._directories:
            return VfsMetadata(
                file_type=VfsFileType.DIRECTORY,
                created=self._timestamp,
                modified=self._timestamp,
            )
        raise NotFoundError(path=path)

    def exists(self, path: str) -> bool:
        return path in self._files or path in self._directories

    def create_dir(self, path: str) -> None:
        raise self._read_only(path)

    def create_file(self, path: str) -> BinaryIO:
        raise self._read_only(path)

    def append_file(self, path: str) -> BinaryIO:
        raise self._read_only(path)

    def remove_file(self, path: str) -> None:
        raise self._read_only(path)

    def remove_dir(self, path: str) -> None:
        raise self._read_only(path)

    def __repr__(self) -> str:
        return f"EmbeddedFS(files={len(self._files)})"
