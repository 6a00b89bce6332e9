"""An ephemeral in-memory filesystem.

The tree is a set of directory and file nodes without parent pointers, owned
by one MemoryFS instance. A single re-entrant lock per instance guards every
structural change, every write commit and every read, so listings are never
torn and concurrent creators never lose an entry.
"""

from __future__ import annotations

import io
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, Dict, Iterator, Optional, Tuple, Union

from .. import path as vpath
from ..data_models import DirEntry, VfsFileType, VfsMetadata, utc_now
from ..exceptions import AlreadyExistsError, InvalidPathError, NotFoundError, OtherError
from ..filesystem import FileSystem

logger = logging.getLogger(__name__)


@dataclass
class FileNode:
    """A file: immutable content bytes plus timestamps."""
    content: bytes = b""
    created: datetime = field(default_factory=utc_now)
    modified: Optional[datetime] = None
    accessed: Optional[datetime] = None

    file_type = VfsFileType.FILE


@dataclass
class DirectoryNode:
    """A directory: children in creation order."""
    children: Dict[str, "Node"] = field(default_factory=dict)
    created: datetime = field(default_factory=utc_now)
    modified: Optional[datetime] = None
    accessed: Optional[datetime] = None

    file_type = VfsFileType.DIRECTORY


Node = Union[FileNode, DirectoryNode]


class MemoryWriteHandle(io.BytesIO):
    """Write handle buffering bytes privately.

    Readers keep seeing the previous content until flush() or close() commits
    the whole buffer, replacing what was there.
    """

    def __init__(self, filesystem: "MemoryFS", path: str, initial: bytes = b"", append: bool = False):
        super().__init__(initial)
        if append:
            self.seek(0, io.SEEK_END)
        self._filesystem = filesystem
        self._path = path

    @property
    def name(self) -> str:
        return self._path

    def flush(self) -> None:
        super().flush()
        self._filesystem._commit(self._path, self.getvalue())

    def close(self) -> None:
        if self.closed:
            return
        try:
            self.flush()
        finally:
            super().close()


class MemoryFS(FileSystem):
    """In-memory backend, the reference implementation of every capability."""

    def __init__(self) -> None:
        now = utc_now()
        self._root = DirectoryNode(created=now, modified=now, accessed=now)
        self._lock = threading.RLock()

    # === Tree helpers (callers hold the lock) ===

    def _lookup(self, path: str) -> Optional[Node]:
        node: Node = self._root
        for segment in vpath.split_segments(path):
            if not isinstance(node, DirectoryNode):
                return None
            child = node.children.get(segment)
            if child is None:
                return None
            node = child
        return node

    def _get(self, path: str) -> Node:
        node = self._lookup(path)
        if node is None:
            raise NotFoundError(path=path)
        return node

    def _get_dir(self, path: str) -> DirectoryNode:
        node = self._get(path)
        if not isinstance(node, DirectoryNode):
            raise OtherError("Path is not a directory", path=path)
        return node

    def _get_file(self, path: str) -> FileNode:
        node = self._get(path)
        if not isinstance(node, FileNode):
            raise OtherError("Path is a directory", path=path)
        return node

    def _parent_dir(self, path: str) -> Tuple[DirectoryNode, str]:
        parent_path = vpath.parent_of(path)
        if parent_path is None:
            raise InvalidPathError("The root has no parent", path=path)
        parent = self._lookup(parent_path)
        if parent is None:
            raise NotFoundError("Parent path does not exist", path=path)
        if not isinstance(parent, DirectoryNode):
            raise OtherError("Parent path is not a directory", path=path)
        return parent, vpath.filename_of(path)

    def _ensure_absent(self, path: str) -> None:
        node = self._lookup(path)
        if node is not None:
            raise AlreadyExistsError(file_type=node.file_type, path=path)

    def _commit(self, path: str, data: bytes) -> None:
        with self._lock:
            parent, name = self._parent_dir(path)
            existing = parent.children.get(name)
            if isinstance(existing, DirectoryNode):
                raise OtherError("A directory replaced the file being written", path=path)
            now = utc_now()
            parent.children[name] = FileNode(
                content=data,
                created=existing.created if existing else now,
                modified=now,
                accessed=existing.accessed if existing else None,
            )
        logger.debug(f"Committed {len(data)} bytes to '{path}'", extra={"backend": "MemoryFS"})

    # === Capability ===

    def read_dir(self, path: str) -> Iterator[DirEntry]:
        with self._lock:
            directory = self._get_dir(path)
            entries = [DirEntry(name, node.file_type) for name, node in directory.children.items()]
        return iter(entries)

    def create_dir(self, path: str) -> None:
        with self._lock:
            self._ensure_absent(path)
            parent, name = self._parent_dir(path)
            now = utc_now()
            parent.children[name] = DirectoryNode(created=now, modified=now, accessed=now)
            parent.modified = now

    def open_file(self, path: str) -> BinaryIO:
        with self._lock:
            node = self._get_file(path)
            node.accessed = utc_now()
            content = node.content
        return io.BytesIO(content)

    def create_file(self, path: str) -> BinaryIO:
        with self._lock:
            if vpath.is_root(path):
                raise AlreadyExistsError(file_type=VfsFileType.DIRECTORY, path=path)
            parent, name = self._parent_dir(path)
            existing = parent.children.get(name)
            if isinstance(existing, DirectoryNode):
                raise AlreadyExistsError(file_type=VfsFileType.DIRECTORY, path=path)
            now = utc_now()
            parent.children[name] = FileNode(
                content=b"",
                created=existing.created if existing else now,
                modified=now,
                accessed=existing.accessed if existing else now,
            )
            parent.modified = now
        return MemoryWriteHandle(self, path)

    def append_file(self, path: str) -> BinaryIO:
        with self._lock:
            content = self._get_file(path).content
        return MemoryWriteHandle(self, path, content, append=True)

    def metadata(self, path: str) -> VfsMetadata:
        with self._lock:
            node = self._get(path)
            return VfsMetadata(
                file_type=node.file_type,
                len=len(node.content) if isinstance(node, FileNode) else 0,
                created=node.created,
                modified=node.modified,
                accessed=node.accessed,
            )

    def exists(self, path: str) -> bool:
        with self._lock:
            return self._lookup(path) is not None

    def remove_file(self, path: str) -> None:
        with self._lock:
            if vpath.is_root(path):
                raise OtherError("Path is a directory", path=path)
            parent, name = self._parent_dir(path)
            node = parent.children.get(name)
            if node is None:
                raise NotFoundError(path=path)
            if isinstance(node, DirectoryNode):
                raise OtherError("Path is a directory", path=path)
            del parent.children[name]
            parent.modified = utc_now()

    def remove_dir(self, path: str) -> None:
        with self._lock:
            if vpath.is_root(path):
                raise InvalidPathError("Cannot remove the root directory", path=path)
            parent, name = self._parent_dir(path)
            node = parent.children.get(name)
            if node is None:
                raise NotFoundError(path=path)
            if not isinstance(node, DirectoryNode):
                raise OtherError("Path is not a directory", path=path)
            if node.children:
                raise OtherError("Directory to remove is not empty", path=path)
            del parent.children[name]
            parent.modified = utc_now()

    # === Optional capabilities ===

    def copy_file(self, src: str, dest: str) -> None:
        with self._lock:
            node = self._get_file(src)
            self._ensure_absent(dest)
            parent, name = self._parent_dir(dest)
            now = utc_now()
            parent.children[name] = FileNode(content=node.content, created=now, modified=now, accessed=now)
            parent.modified = now

    def move_file(self, src: str, dest: str) -> None:
        with self._lock:
            self._get_file(src)
            self._move_node(src, dest)

    def move_dir(self, src: str, dest: str) -> None:
        with self._lock:
            if vpath.is_root(src):
                raise InvalidPathError("Cannot move the root directory", path=src)
            self._get_dir(src)
            if dest.startswith(src + "/"):
                raise InvalidPathError("Cannot move a directory into itself", path=dest)
            self._move_node(src, dest)

    def _move_node(self, src: str, dest: str) -> None:
        self._ensure_absent(dest)
        dest_parent, dest_name = self._parent_dir(dest)
        src_parent, src_name = self._parent_dir(src)
        now = utc_now()
        dest_parent.children[dest_name] = src_parent.children.pop(src_name)
        src_parent.modified = now
        dest_parent.modified = now

    def set_creation_time(self, path: str, time: datetime) -> None:
        with self._lock:
            self._get(path).created = time

    def set_modification_time(self, path: str, time: datetime) -> None:
        with self._lock:
            self._get(path).modified = time

    def set_access_time(self, path: str, time: datetime) -> None:
        with self._lock:
            self._get(path).accessed = time
