"""Async virtual paths.

Navigation is inherited unchanged from the blocking form; every other
operation awaits the backend.

Example:
    >>> import asyncio
    >>> from layerfs.async_vfs import AsyncMemoryFS, AsyncVfsPath
    >>> async def main():
    ...     root = AsyncVfsPath(AsyncMemoryFS())
    ...     await root.join("hello.txt").write_text("hi")
    ...     return await root.join("hello.txt").read_to_string()
    >>> asyncio.run(main())
    'hi'
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import AsyncIterator, List

from .. import path as vpath
from ..data_models import VfsDirEntry, VfsFileType, VfsMetadata
from ..exceptions import (
    AlreadyExistsError,
    InvalidPathError,
    NotFoundError,
    NotSupportedError,
    OtherError,
)
from ..utils import backend_name
from ..vfs_path import BaseVfsPath, error_context
from .filesystem import AsyncFileHandle, AsyncFileSystem

logger = logging.getLogger(__name__)


class AsyncVfsPath(BaseVfsPath):
    """Async virtual filesystem path bound to an :class:`AsyncFileSystem`."""

    __slots__ = ()

    _backend_type = AsyncFileSystem

    # === Queries ===

    async def exists(self) -> bool:
        with error_context(self._path, "Could not check existence"):
            return await self._fs.exists(self._path)

    async def metadata(self) -> VfsMetadata:
        with error_context(self._path, "Could not get metadata"):
            return await self._fs.metadata(self._path)

    async def is_file(self) -> bool:
        if not await self.exists():
            return False
        return (await self.metadata()).file_type is VfsFileType.FILE

    async def is_dir(self) -> bool:
        if not await self.exists():
            return False
        return (await self.metadata()).file_type is VfsFileType.DIRECTORY

    # === Directories ===

    async def _ensure_parent(self, action: str) -> None:
        parent = self.parent()
        if parent is None:
            raise AlreadyExistsError(
                f"Could not {action}, the root always exists",
                file_type=VfsFileType.DIRECTORY,
                path=self._path,
            )
        if not await parent.exists():
            raise NotFoundError(
                f"Could not {action}, parent directory does not exist", path=self._path
            )
        if (await parent.metadata()).file_type is not VfsFileType.DIRECTORY:
            raise OtherError(
                f"Could not {action}, parent path is not a directory", path=self._path
            )

    async def create_dir(self) -> None:
        await self._ensure_parent("create directory")
        with error_context(self._path, "Could not create directory"):
            await self._fs.create_dir(self._path)

    async def create_dir_all(self) -> None:
        """Create this directory and every missing ancestor; safe under concurrent tasks."""
        if self.is_root():
            return
        for directory in vpath.ancestors(self._path) + [self._path]:
            with error_context(directory, f"Could not create directories at '{self._path}'"):
                if await self._fs.exists(directory):
                    if (await self._fs.metadata(directory)).file_type is not VfsFileType.DIRECTORY:
                        raise AlreadyExistsError(
                            "A file is in the way", file_type=VfsFileType.FILE, path=directory
                        )
                    continue
                try:
                    await self._fs.create_dir(directory)
                except AlreadyExistsError as exc:
                    file_type = exc.file_type or (await self._fs.metadata(directory)).file_type
                    if file_type is not VfsFileType.DIRECTORY:
                        raise
                    logger.debug(
                        f"Directory '{directory}' appeared concurrently",
                        extra={"backend": backend_name(self._fs)},
                    )

    async def read_dir(self) -> AsyncIterator[VfsDirEntry]:
        """Iterate over the direct children of this directory.

        Awaiting this fails right away for a missing directory; the returned
        async iterator then yields the entries.
        """
        with error_context(self._path, "Could not read directory"):
            entries = await self._fs.read_dir(self._path)
        return self._entries(entries)

    async def _entries(self, entries) -> AsyncIterator[VfsDirEntry]:
        async for entry in entries:
            yield VfsDirEntry(self._child(entry.name), entry.file_type)

    async def walk_dir(self) -> AsyncIterator[VfsDirEntry]:
        """Recursively iterate over everything below this directory, pre-order."""
        return self._walk(await self.read_dir())

    @staticmethod
    async def _walk(entries: AsyncIterator[VfsDirEntry]) -> AsyncIterator[VfsDirEntry]:
        stack = [entries]
        while stack:
            try:
                entry = await stack[-1].__anext__()
            except StopAsyncIteration:
                stack.pop()
                continue
            yield entry
            if entry.is_dir:
                stack.append(await entry.path.read_dir())

    async def _list(self) -> List[VfsDirEntry]:
        return [entry async for entry in await self.read_dir()]

    async def remove_dir(self) -> None:
        with error_context(self._path, "Could not remove directory"):
            await self._fs.remove_dir(self._path)

    async def remove_dir_all(self) -> None:
        if not await self.exists():
            return
        for entry in await self._list():
            if entry.is_dir:
                await entry.path.remove_dir_all()
            else:
                await entry.path.remove_file()
        await self.remove_dir()

    # === Files ===

    async def open_file(self) -> AsyncFileHandle:
        with error_context(self._path, "Could not open file"):
            return await self._fs.open_file(self._path)

    async def create_file(self) -> AsyncFileHandle:
        await self._ensure_parent("create file")
        with error_context(self._path, "Could not create file"):
            return await self._fs.create_file(self._path)

    async def append_file(self) -> AsyncFileHandle:
        with error_context(self._path, "Could not open file for appending"):
            return await self._fs.append_file(self._path)

    async def remove_file(self) -> None:
        with error_context(self._path, "Could not remove file"):
            await self._fs.remove_file(self._path)

    async def read_to_bytes(self) -> bytes:
        if (await self.metadata()).file_type is not VfsFileType.FILE:
            raise OtherError("Could not read path, it is a directory", path=self._path)
        async with await self.open_file() as handle:
            return await handle.read()

    async def read_to_string(self, encoding: str = "utf-8") -> str:
        data = await self.read_to_bytes()
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as exc:
            raise OtherError(
                f"Could not read path, content is not valid {encoding}", path=self._path
            ) from exc

    async def write_bytes(self, data: bytes) -> None:
        async with await self.create_file() as handle:
            await handle.write(data)

    async def write_text(self, text: str, encoding: str = "utf-8") -> None:
        await self.write_bytes(text.encode(encoding))

    # === Time metadata ===

    async def set_creation_time(self, time: datetime) -> None:
        with error_context(self._path, "Could not set creation time"):
            await self._fs.set_creation_time(self._path, time)

    async def set_modification_time(self, time: datetime) -> None:
        with error_context(self._path, "Could not set modification time"):
            await self._fs.set_modification_time(self._path, time)

    async def set_access_time(self, time: datetime) -> None:
        with error_context(self._path, "Could not set access time"):
            await self._fs.set_access_time(self._path, time)

    # === Composed operations ===

    async def _check_destination(self, destination: "AsyncVfsPath") -> None:
        if await destination.exists():
            raise AlreadyExistsError("Destination exists already", path=destination._path)

    async def _stream_to(self, destination: "AsyncVfsPath") -> None:
        chunk_size = self.settings.copy_buffer_size
        async with await self.open_file() as source, await destination.create_file() as target:
            while True:
                chunk = await source.read(chunk_size)
                if not chunk:
                    break
                await target.write(chunk)

    async def copy_file(self, destination: "AsyncVfsPath") -> None:
        with error_context(self._path, f"Could not copy '{self._path}' to '{destination._path}'"):
            await self._check_destination(destination)
            if self._fs is destination._fs:
                try:
                    await self._fs.copy_file(self._path, destination._path)
                    return
                except NotSupportedError:
                    pass
            await self._stream_to(destination)

    async def move_file(self, destination: "AsyncVfsPath") -> None:
        with error_context(self._path, f"Could not move '{self._path}' to '{destination._path}'"):
            await self._check_destination(destination)
            if self._fs is destination._fs:
                try:
                    await self._fs.move_file(self._path, destination._path)
                    return
                except NotSupportedError:
                    pass
            await self._stream_to(destination)
            await self.remove_file()

    def _check_not_nested(self, destination: "AsyncVfsPath") -> None:
        if self._is_nested_in_self(destination):
            raise InvalidPathError(
                "Cannot copy or move a directory into itself", path=destination._path
            )

    async def _copy_tree(self, destination: "AsyncVfsPath") -> int:
        await destination.create_dir()
        copied = 0
        async for entry in await self.walk_dir():
            target = self._relative_target(destination, entry.path.as_str())
            if entry.is_dir:
                await target.create_dir()
            else:
                await entry.path.copy_file(target)
            copied += 1
        return copied

    async def copy_dir(self, destination: "AsyncVfsPath") -> int:
        """Recursively copy this directory, returning the number of entries copied."""
        with error_context(
            self._path, f"Could not copy directory '{self._path}' to '{destination._path}'"
        ):
            await self._check_destination(destination)
            self._check_not_nested(destination)
            copied = await self._copy_tree(destination)
        logger.debug(
            f"Copied {copied} entries from '{self._path}' to '{destination._path}'",
            extra={"backend": backend_name(self._fs)},
        )
        return copied

    async def move_dir(self, destination: "AsyncVfsPath") -> None:
        with error_context(
            self._path, f"Could not move directory '{self._path}' to '{destination._path}'"
        ):
            await self._check_destination(destination)
            self._check_not_nested(destination)
            if self._fs is destination._fs:
                try:
                    await self._fs.move_dir(self._path, destination._path)
                    return
                except NotSupportedError:
                    pass
            await self._copy_tree(destination)
            await self.remove_dir_all()
