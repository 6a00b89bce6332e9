"""
Tests for the async form of layerfs.

This module tests:
- AsyncFileSystemAdapter in inline and offloaded mode
- AsyncFileHandle suspension points
- AsyncVfsPath parity with VfsPath
- Async composites (altroot, overlay) and the physical backend
- Concurrent tasks and cancellation
"""

import asyncio

import pytest

from layerfs import (
    AlreadyExistsError,
    InvalidPathError,
    MemoryFS,
    NotFoundError,
    NotSupportedError,
    OtherError,
    VfsPath,
)
from layerfs.async_vfs import (
    AsyncAltrootFS,
    AsyncFileSystemAdapter,
    AsyncMemoryFS,
    AsyncOverlayFS,
    AsyncPhysicalFS,
    AsyncVfsPath,
)
from layerfs.config import configure


@pytest.fixture
def async_fs():
    return AsyncMemoryFS()


@pytest.fixture
def aroot(async_fs):
    return AsyncVfsPath(async_fs)


async def collect(iterator):
    return [entry.path.as_str() async for entry in iterator]


# =============================================================================
# Adapter Tests
# =============================================================================

class TestAdapter:
    """Tests for AsyncFileSystemAdapter."""

    def test_rejects_non_backend(self):
        """Test that only sync backends can be adapted."""
        with pytest.raises(TypeError):
            AsyncFileSystemAdapter(object())

    def test_offload_default_from_settings(self):
        """Test that the offload default comes from the settings."""
        assert AsyncFileSystemAdapter(MemoryFS()).offload is False

        configure(async_offload=True)

        assert AsyncFileSystemAdapter(MemoryFS()).offload is True

    def test_path_needs_async_backend(self):
        """Test that AsyncVfsPath refuses a sync backend."""
        with pytest.raises(TypeError):
            AsyncVfsPath(MemoryFS())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("offload", [False, True])
    async def test_shared_state_with_sync_form(self, offload):
        """Test that both forms see the same backend state."""
        fs = MemoryFS()
        VfsPath(fs).join("sync.txt").write_text("from sync")
        root = AsyncVfsPath(AsyncFileSystemAdapter(fs, offload=offload))

        assert await root.join("sync.txt").read_to_string() == "from sync"

        await root.join("async.txt").write_text("from async")

        assert VfsPath(fs).join("async.txt").read_to_string() == "from async"

    @pytest.mark.asyncio
    async def test_read_dir_fails_on_await(self, async_fs):
        """Test that listing a missing directory fails when awaited."""
        with pytest.raises(NotFoundError):
            await async_fs.read_dir("/missing")


# =============================================================================
# File Handle Tests
# =============================================================================

class TestAsyncFileHandle:
    """Tests for AsyncFileHandle."""

    @pytest.mark.asyncio
    async def test_write_seek_read(self, async_fs):
        """Test each handle method."""
        async with await async_fs.create_file("/f") as handle:
            assert await handle.write(b"hello") == 5
            assert await handle.tell() == 5
            await handle.flush()

        reader = await async_fs.open_file("/f")
        await reader.seek(1)
        assert await reader.read(3) == b"ell"
        await reader.close()
        assert reader.closed

    @pytest.mark.asyncio
    async def test_commit_on_close(self, async_fs):
        """Test that buffered writes become visible on close."""
        handle = await async_fs.create_file("/f")
        await handle.write(b"data")

        assert (await async_fs.metadata("/f")).len == 0

        await handle.close()

        assert (await async_fs.metadata("/f")).len == 4


# =============================================================================
# AsyncVfsPath Tests
# =============================================================================

class TestAsyncVfsPath:
    """Tests for AsyncVfsPath."""

    def test_navigation_is_sync(self, aroot):
        """Test that navigation needs no await."""
        path = aroot.join("a//b/../c.txt")

        assert path.as_str() == "/a/c.txt"
        assert path.parent().as_str() == "/a"
        assert path.extension() == "txt"
        with pytest.raises(InvalidPathError):
            aroot.join("..")

    @pytest.mark.asyncio
    async def test_directories(self, aroot):
        """Test directory creation, listing and removal."""
        await aroot.join("a/b").create_dir_all()
        await aroot.join("a/b").create_dir_all()
        await aroot.join("a/z.txt").write_text("z")

        assert await aroot.join("a/b").is_dir()
        assert await collect(await aroot.join("a").read_dir()) == ["/a/b", "/a/z.txt"]

        await aroot.join("a").remove_dir_all()

        assert not await aroot.join("a").exists()

    @pytest.mark.asyncio
    async def test_create_dir_errors(self, aroot):
        """Test the create_dir preconditions."""
        with pytest.raises(NotFoundError):
            await aroot.join("x/y").create_dir()
        with pytest.raises(AlreadyExistsError):
            await aroot.create_dir()

    @pytest.mark.asyncio
    async def test_walk_dir_order(self, aroot):
        """Test depth-first pre-order walking in creation order."""
        await aroot.join("a").create_dir()
        await aroot.join("a/b.txt").write_text("b")
        await aroot.join("c.txt").write_text("c")

        assert await collect(await aroot.walk_dir()) == ["/a", "/a/b.txt", "/c.txt"]

    @pytest.mark.asyncio
    async def test_files(self, aroot):
        """Test reads, writes and appends."""
        path = aroot.join("log.txt")
        await path.write_text("one")

        async with await path.append_file() as handle:
            await handle.write(b"two")

        assert await path.read_to_string() == "onetwo"
        assert await path.is_file()
        assert (await path.metadata()).len == 6

        await path.remove_file()
        assert not await path.exists()

    @pytest.mark.asyncio
    async def test_read_errors(self, aroot):
        """Test read failures and their context."""
        await aroot.join("d").create_dir()

        with pytest.raises(OtherError):
            await aroot.join("d").read_to_bytes()
        with pytest.raises(NotFoundError) as exc_info:
            await aroot.join("missing").open_file()

        assert exc_info.value.path == "/missing"
        assert "Could not open file" in exc_info.value.contexts

    @pytest.mark.asyncio
    async def test_copy_and_move(self, aroot):
        """Test copy/move within one backend and across backends."""
        other = AsyncVfsPath(AsyncMemoryFS())
        await aroot.join("src/inner").create_dir_all()
        await aroot.join("src/inner/f.txt").write_text("f")
        await aroot.join("src/g.txt").write_text("g")

        copied = await aroot.join("src").copy_dir(aroot.join("copy"))
        await aroot.join("src/g.txt").copy_file(other.join("g.txt"))
        await aroot.join("copy").move_dir(other.join("moved"))

        assert copied == 3
        assert await other.join("g.txt").read_to_string() == "g"
        assert await other.join("moved/inner/f.txt").read_to_string() == "f"
        assert not await aroot.join("copy").exists()

    @pytest.mark.asyncio
    async def test_move_file(self, aroot):
        """Test moving a file."""
        await aroot.join("a").write_text("a")

        await aroot.join("a").move_file(aroot.join("b"))

        assert not await aroot.join("a").exists()
        assert await aroot.join("b").read_to_string() == "a"

    @pytest.mark.asyncio
    async def test_copy_dir_into_itself(self, aroot):
        """Test that copying a directory into itself fails."""
        await aroot.join("a").create_dir()

        with pytest.raises(InvalidPathError):
            await aroot.join("a").copy_dir(aroot.join("a/b"))


# =============================================================================
# Async Composite Tests
# =============================================================================

class TestAsyncComposites:
    """Tests for the async composite backends."""

    @pytest.mark.asyncio
    async def test_overlay(self):
        """Test union reads, writes and copy-up in the async form."""
        top, bottom = AsyncMemoryFS(), AsyncMemoryFS()
        await AsyncVfsPath(bottom).join("dir").create_dir()
        await AsyncVfsPath(bottom).join("a.txt").write_text("hello")
        union = AsyncVfsPath(AsyncOverlayFS([top, bottom]))

        assert await union.join("a.txt").read_to_string() == "hello"

        await union.join("a.txt").write_text("world")
        await union.join("dir/file.txt").write_text("new")

        assert await union.join("a.txt").read_to_string() == "world"
        assert await AsyncVfsPath(bottom).join("a.txt").read_to_string() == "hello"
        assert await AsyncVfsPath(top).join("dir").is_dir()

    @pytest.mark.asyncio
    async def test_overlay_remove_lower_only(self):
        """Test that lower-only paths cannot be removed."""
        bottom = MemoryFS()
        VfsPath(bottom).join("f").write_text("x")
        union = AsyncVfsPath(AsyncOverlayFS([AsyncMemoryFS(), bottom]))

        with pytest.raises(NotSupportedError):
            await union.join("f").remove_file()

    @pytest.mark.asyncio
    async def test_altroot(self):
        """Test root translation in the async form."""
        inner = AsyncMemoryFS()
        root = AsyncVfsPath(AsyncAltrootFS(inner, "/sub"))

        await root.join("x/y").create_dir_all()

        assert await AsyncVfsPath(inner).join("sub/x/y").is_dir()
        assert await root.join("x/y").exists()

    def test_composite_rejects_native_async_layers(self):
        """Test that only adapter-backed layers can be composed."""

        class Foreign:
            pass

        with pytest.raises(TypeError):
            AsyncOverlayFS([AsyncMemoryFS(), Foreign()])

    @pytest.mark.asyncio
    async def test_physical(self, tmp_path):
        """Test the offloaded host backend."""
        fs = AsyncPhysicalFS(tmp_path / "root")
        root = AsyncVfsPath(fs)

        await root.join("d").create_dir()
        await root.join("d/f.txt").write_text("host")

        assert fs.offload is True
        assert (tmp_path / "root" / "d" / "f.txt").read_text() == "host"
        assert await collect(await root.read_dir()) == ["/d"]


# =============================================================================
# Concurrency Tests
# =============================================================================

class TestAsyncConcurrency:
    """Tests for concurrent tasks."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("offload", [False, True])
    async def test_concurrent_create_dir_all(self, offload):
        """Test many tasks creating the same tree."""
        fs = AsyncFileSystemAdapter(MemoryFS(), offload=offload)
        root = AsyncVfsPath(fs)

        await asyncio.gather(*(root.join("a/b/c").create_dir_all() for _ in range(20)))

        assert await root.join("a/b/c").is_dir()
        assert await collect(await root.join("a").read_dir()) == ["/a/b"]

    @pytest.mark.asyncio
    async def test_cancelled_before_call_has_no_effect(self):
        """Test that a call cancelled at its first suspension does nothing."""
        fs = MemoryFS()
        root = AsyncVfsPath(AsyncFileSystemAdapter(fs, offload=False))

        task = asyncio.ensure_future(root.filesystem.create_dir("/d"))
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert not fs.exists("/d")
