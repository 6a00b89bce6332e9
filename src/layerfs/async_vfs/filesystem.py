"""Async Backend Capability contract and the adapter projecting sync backends onto it.

Every backend call is one awaitable unit of work. The adapter first yields to
the event loop and then runs the synchronous call in one go, so a task
cancelled while waiting for its turn leaves no side effect behind. With
``offload`` the call runs through ``asyncio.to_thread`` instead, which keeps
blocking host I/O off the event loop; a cancelled offloaded call still runs
to completion in its worker thread, never halfway.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, BinaryIO, Callable, List, Optional, Sequence, Union

from ..backends import AltrootFS, MemoryFS, OverlayFS, PhysicalFS
from ..config import VfsSettings, get_settings
from ..data_models import DirEntry, VfsMetadata
from ..exceptions import NotSupportedError
from ..filesystem import FileSystem


async def _iterate(entries: List[DirEntry]) -> AsyncIterator[DirEntry]:
    for entry in entries:
        yield entry


class AsyncFileHandle:
    """Awaitable wrapper around a binary file handle.

    Each read, write, seek, flush and close is a separate suspension point.
    """

    def __init__(self, handle: BinaryIO, offload: bool = False) -> None:
        self._handle = handle
        self._offload = offload

    async def _call(self, method: Callable[..., Any], *args: Any) -> Any:
        if self._offload:
            return await asyncio.to_thread(method, *args)
        await asyncio.sleep(0)
        return method(*args)

    @property
    def closed(self) -> bool:
        return self._handle.closed

    async def read(self, size: int = -1) -> bytes:
        return await self._call(self._handle.read, size)

    async def write(self, data: bytes) -> int:
        return await self._call(self._handle.write, data)

    async def seek(self, offset: int, whence: int = 0) -> int:
        return await self._call(self._handle.seek, offset, whence)

    async def tell(self) -> int:
        return await self._call(self._handle.tell)

    async def flush(self) -> None:
        await self._call(self._handle.flush)

    async def close(self) -> None:
        await self._call(self._handle.close)

    async def __aenter__(self) -> "AsyncFileHandle":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class AsyncFileSystem(ABC):
    """Async counterpart of :class:`layerfs.filesystem.FileSystem`."""

    @abstractmethod
    async def read_dir(self, path: str) -> AsyncIterator[DirEntry]:
        pass

    @abstractmethod
    async def create_dir(self, path: str) -> None:
        pass

    @abstractmethod
    async def open_file(self, path: str) -> AsyncFileHandle:
        pass

    @abstractmethod
    async def create_file(self, path: str) -> AsyncFileHandle:
        pass

    @abstractmethod
    async def append_file(self, path: str) -> AsyncFileHandle:
        pass

    @abstractmethod
    async def metadata(self, path: str) -> VfsMetadata:
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def remove_file(self, path: str) -> None:
        pass

    @abstractmethod
    async def remove_dir(self, path: str) -> None:
        pass

    async def copy_file(self, src: str, dest: str) -> None:
        raise NotSupportedError(path=src)

    async def move_file(self, src: str, dest: str) -> None:
        raise NotSupportedError(path=src)

    async def move_dir(self, src: str, dest: str) -> None:
        raise NotSupportedError(path=src)

    async def set_creation_time(self, path: str, time: datetime) -> None:
        raise NotSupportedError("Setting the creation time is not supported", path=path)

    async def set_modification_time(self, path: str, time: datetime) -> None:
        raise NotSupportedError("Setting the modification time is not supported", path=path)

    async def set_access_time(self, path: str, time: datetime) -> None:
        raise NotSupportedError("Setting the access time is not supported", path=path)


class AsyncFileSystemAdapter(AsyncFileSystem):
    """Projects a synchronous backend, composites included, onto the async contract."""

    def __init__(self, filesystem: FileSystem, offload: Optional[bool] = None) -> None:
        """
        Args:
            filesystem: The synchronous backend to project
            offload: Run calls in a worker thread. Defaults to ``VfsSettings.async_offload``.
        """
        if not isinstance(filesystem, FileSystem):
            raise TypeError(f"filesystem must implement FileSystem, got {type(filesystem).__name__}")
        self._fs = filesystem
        self._offload = get_settings().async_offload if offload is None else offload

    @property
    def sync_filesystem(self) -> FileSystem:
        return self._fs

    @property
    def offload(self) -> bool:
        return self._offload

    async def _call(self, method: Callable[..., Any], *args: Any) -> Any:
        if self._offload:
            return await asyncio.to_thread(method, *args)
        await asyncio.sleep(0)
        return method(*args)

    def _handle(self, handle: BinaryIO) -> AsyncFileHandle:
        return AsyncFileHandle(handle, offload=self._offload)

    async def read_dir(self, path: str) -> AsyncIterator[DirEntry]:
        entries = await self._call(lambda: list(self._fs.read_dir(path)))
        return _iterate(entries)

    async def create_dir(self, path: str) -> None:
        await self._call(self._fs.create_dir, path)

    async def open_file(self, path: str) -> AsyncFileHandle:
        return self._handle(await self._call(self._fs.open_file, path))

    async def create_file(self, path: str) -> AsyncFileHandle:
        return self._handle(await self._call(self._fs.create_file, path))

    async def append_file(self, path: str) -> AsyncFileHandle:
        return self._handle(await self._call(self._fs.append_file, path))

    async def metadata(self, path: str) -> VfsMetadata:
        return await self._call(self._fs.metadata, path)

    async def exists(self, path: str) -> bool:
        return await self._call(self._fs.exists, path)

    async def remove_file(self, path: str) -> None:
        await self._call(self._fs.remove_file, path)

    async def remove_dir(self, path: str) -> None:
        await self._call(self._fs.remove_dir, path)

    async def copy_file(self, src: str, dest: str) -> None:
        await self._call(self._fs.copy_file, src, dest)

    async def move_file(self, src: str, dest: str) -> None:
        await self._call(self._fs.move_file, src, dest)

    async def move_dir(self, src: str, dest: str) -> None:
        await self._call(self._fs.move_dir, src, dest)

    async def set_creation_time(self, path: str, time: datetime) -> None:
        await self._call(self._fs.set_creation_time, path, time)

    async def set_modification_time(self, path: str, time: datetime) -> None:
        await self._call(self._fs.set_modification_time, path, time)

    async def set_access_time(self, path: str, time: datetime) -> None:
        await self._call(self._fs.set_access_time, path, time)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._fs!r}, offload={self._offload})"


LayerLike = Union[FileSystem, AsyncFileSystemAdapter]


def _unwrap(layer: LayerLike) -> FileSystem:
    """Composites are built once over sync backends; adapters are unwrapped to theirs."""
    if isinstance(layer, AsyncFileSystemAdapter):
        return layer.sync_filesystem
    if isinstance(layer, FileSystem):
        return layer
    raise TypeError(
        f"Composite async backends need adapter-backed layers, got {type(layer).__name__}"
    )


class AsyncMemoryFS(AsyncFileSystemAdapter):
    """In-memory backend for the async form."""

    def __init__(self, offload: Optional[bool] = None) -> None:
        super().__init__(MemoryFS(), offload=offload)


class AsyncAltrootFS(AsyncFileSystemAdapter):
    """Root-translating backend for the async form."""

    def __init__(
        self,
        inner: LayerLike,
        prefix: str = "/",
        create_prefix: bool = True,
        offload: Optional[bool] = None,
    ) -> None:
        super().__init__(AltrootFS(_unwrap(inner), prefix, create_prefix=create_prefix), offload=offload)


class AsyncOverlayFS(AsyncFileSystemAdapter):
    """Union backend for the async form; layers are given top first."""

    def __init__(
        self,
        layers: Sequence[LayerLike],
        settings: Optional[VfsSettings] = None,
        offload: Optional[bool] = None,
    ) -> None:
        super().__init__(OverlayFS([_unwrap(layer) for layer in layers], settings=settings), offload=offload)


class AsyncPhysicalFS(AsyncFileSystemAdapter):
    """Host backend for the async form; offloads to worker threads by default."""

    def __init__(
        self,
        root: Path,
        allow_symlink_escape: Optional[bool] = None,
        offload: bool = True,
    ) -> None:
        super().__init__(PhysicalFS(root, allow_symlink_escape=allow_symlink_escape), offload=offload)
