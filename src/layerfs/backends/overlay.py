"""A union filesystem layering one writable backend over read-only ones.

Files in upper layers shadow those in lower layers; directories are the
merged view of all layers. Only ``layers[0]`` is ever written to. Deleting a
file from the top layer lets a lower copy show through again: there are no
whiteouts.
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from typing import BinaryIO, Iterator, List, Optional, Sequence, Tuple

from .. import path as vpath
from ..config import VfsSettings, get_settings
from ..data_models import DirEntry, VfsFileType, VfsMetadata
from ..exceptions import AlreadyExistsError, NotFoundError, NotSupportedError, OtherError
from ..filesystem import FileSystem

logger = logging.getLogger(__name__)


class OverlayFS(FileSystem):
    """Union (overlay) backend over an ordered list of layers, top first.

    Example:
        >>> from layerfs import MemoryFS, VfsPath
        >>> top, bottom = MemoryFS(), MemoryFS()
        >>> union = VfsPath(OverlayFS([top, bottom]))
    """

    def __init__(self, layers: Sequence[FileSystem], settings: Optional[VfsSettings] = None) -> None:
        """Initialize the union backend.

        Args:
            layers: Backends ordered from the writable top to the lowest fallback
            settings: Optional settings (copy-up buffer size)

        Raises:
            ValueError: If no layer is given
        """
        if not layers:
            raise ValueError("OverlayFS needs at least one layer")
        for layer in layers:
            if not isinstance(layer, FileSystem):
                raise TypeError(f"layers must implement FileSystem, got {type(layer).__name__}")
        self._layers: Tuple[FileSystem, ...] = tuple(layers)
        self._settings = settings

    @property
    def layers(self) -> Tuple[FileSystem, ...]:
        return self._layers

    @property
    def top(self) -> FileSystem:
        return self._layers[0]

    # === Layer resolution ===

    def _find_layer(self, path: str) -> Optional[FileSystem]:
        """First layer, top-down, holding an entry at path."""
        for index, layer in enumerate(self._layers):
            if layer.exists(path):
                logger.debug(
                    f"Resolved '{path}' in layer {index}", extra={"backend": "OverlayFS"}
                )
                return layer
        return None

    def _read_layer(self, path: str) -> FileSystem:
        layer = self._find_layer(path)
        if layer is None:
            raise NotFoundError(path=path)
        return layer

    def _copy_up_parents(self, path: str) -> None:
        """Recreate the missing ancestor directories of ``path`` in the top layer.

        Only directory names and kinds are copied; sibling files stay where
        they are.

        Raises:
            NotFoundError: If an ancestor exists in no layer
            OtherError: If an ancestor is a file
        """
        for directory in vpath.ancestors(path):
            if self.top.exists(directory):
                continue
            source = self._read_layer(directory)
            if source.metadata(directory).file_type is not VfsFileType.DIRECTORY:
                raise OtherError("Parent path is not a directory", path=directory)
            try:
                self.top.create_dir(directory)
            except AlreadyExistsError as exc:
                if exc.file_type is VfsFileType.FILE:
                    raise
            logger.debug(f"Copied up directory '{directory}'", extra={"backend": "OverlayFS"})

    def _copy_up_file(self, path: str, source: FileSystem) -> None:
        self._copy_up_parents(path)
        buffer_size = (self._settings or get_settings()).copy_buffer_size
        with source.open_file(path) as reader, self.top.create_file(path) as writer:
            shutil.copyfileobj(reader, writer, buffer_size)
        logger.debug(f"Copied up file '{path}'", extra={"backend": "OverlayFS"})

    # === Capability ===

    def read_dir(self, path: str) -> Iterator[DirEntry]:
        first = self._read_layer(path)
        if first.metadata(path).file_type is not VfsFileType.DIRECTORY:
            return first.read_dir(path)
        listings: List[Iterator[DirEntry]] = []
        for layer in self._layers:
            if layer.exists(path) and layer.metadata(path).file_type is VfsFileType.DIRECTORY:
                listings.append(layer.read_dir(path))
        return self._merge(listings)

    @staticmethod
    def _merge(listings: List[Iterator[DirEntry]]) -> Iterator[DirEntry]:
        seen = set()
        for listing in listings:
            for entry in listing:
                if entry.name in seen:
                    continue
                seen.add(entry.name)
                yield entry

    def create_dir(self, path: str) -> None:
        existing = self._find_layer(path)
        if existing is not None:
            raise AlreadyExistsError(file_type=existing.metadata(path).file_type, path=path)
        self._copy_up_parents(path)
        self.top.create_dir(path)

    def open_file(self, path: str) -> BinaryIO:
        return self._read_layer(path).open_file(path)

    def create_file(self, path: str) -> BinaryIO:
        existing = self._find_layer(path)
        if existing is not None and existing.metadata(path).file_type is VfsFileType.DIRECTORY:
            raise AlreadyExistsError(file_type=VfsFileType.DIRECTORY, path=path)
        self._copy_up_parents(path)
        return self.top.create_file(path)

    def append_file(self, path: str) -> BinaryIO:
        if not self.top.exists(path):
            source = self._read_layer(path)
            if source.metadata(path).file_type is not VfsFileType.FILE:
                raise OtherError("Path is a directory", path=path)
            self._copy_up_file(path, source)
        return self.top.append_file(path)

    def metadata(self, path: str) -> VfsMetadata:
        return self._read_layer(path).metadata(path)

    def exists(self, path: str) -> bool:
        return self._find_layer(path) is not None

    def _top_only(self, path: str, action: str) -> None:
        if self.top.exists(path):
            return
        self._read_layer(path)
        raise NotSupportedError(
            f"Cannot {action}, it only exists in a read-only lower layer", path=path
        )

    def remove_file(self, path: str) -> None:
        self._top_only(path, "remove file")
        self.top.remove_file(path)

    def remove_dir(self, path: str) -> None:
        self._top_only(path, "remove directory")
        self.top.remove_dir(path)

    def set_creation_time(self, path: str, time: datetime) -> None:
        self._top_only(path, "set creation time")
        self.top.set_creation_time(path, time)

    def set_modification_time(self, path: str, time: datetime) -> None:
        self._top_only(path, "set modification time")
        self.top.set_modification_time(path, time)

    def set_access_time(self, path: str, time: datetime) -> None:
        self._top_only(path, "set access time")
        self.top.set_access_time(path, time)

    def __repr__(self) -> str:
        return f"OverlayFS(layers={list(self._layers)!r})"
