"""
Tests for the union (overlay) backend.

This module tests:
- Read fall-through and top-most precedence
- Merged directory listings
- Copy-up of ancestor directories and of appended files
- Top-only removal and the reappearance of lower-layer files
- Read-only layers
"""

from datetime import datetime, timezone

import pytest

from layerfs import (
    AlreadyExistsError,
    EmbeddedFS,
    MemoryFS,
    NotFoundError,
    NotSupportedError,
    OtherError,
    OverlayFS,
    VfsPath,
)


@pytest.fixture
def top():
    return MemoryFS()


@pytest.fixture
def bottom():
    return MemoryFS()


@pytest.fixture
def union(top, bottom):
    return VfsPath(OverlayFS([top, bottom]))


# =============================================================================
# Construction Tests
# =============================================================================

class TestConstruction:
    """Tests for building an OverlayFS."""

    def test_needs_a_layer(self):
        """Test that an empty layer list is rejected."""
        with pytest.raises(ValueError):
            OverlayFS([])

    def test_layers_must_be_backends(self):
        """Test that every layer must be a backend."""
        with pytest.raises(TypeError):
            OverlayFS([MemoryFS(), "nope"])

    def test_top(self, top, bottom):
        """Test that the first layer is the writable top."""
        overlay = OverlayFS([top, bottom])

        assert overlay.top is top
        assert overlay.layers == (top, bottom)


# =============================================================================
# Read Tests
# =============================================================================

class TestReads:
    """Tests for read fall-through and precedence."""

    def test_write_goes_to_top_only(self, union, bottom):
        """Test reading through, writing to top, and leaving the bottom intact."""
        VfsPath(bottom).join("a.txt").write_text("hello")

        assert union.join("a.txt").read_to_string() == "hello"

        union.join("a.txt").write_text("world")

        assert union.join("a.txt").read_to_string() == "world"
        assert VfsPath(bottom).join("a.txt").read_to_string() == "hello"

    def test_top_shadows_bottom(self, union, top, bottom):
        """Test that the top-most layer wins."""
        VfsPath(bottom).join("f").write_text("bottom")
        VfsPath(top).join("f").write_text("top!")

        assert union.join("f").read_to_string() == "top!"
        assert union.join("f").metadata().len == 4

    def test_three_layers(self, top):
        """Test falling through more than one layer."""
        middle, lowest = MemoryFS(), MemoryFS()
        VfsPath(lowest).join("deep.txt").write_text("deep")
        union = VfsPath(OverlayFS([top, middle, lowest]))

        assert union.join("deep.txt").read_to_string() == "deep"

    def test_missing_everywhere(self, union):
        """Test that a miss in every layer looks like a plain miss."""
        with pytest.raises(NotFoundError):
            union.join("nope").open_file()
        with pytest.raises(NotFoundError):
            union.join("nope").metadata()
        assert not union.join("nope").exists()


# =============================================================================
# Listing Tests
# =============================================================================

class TestListing:
    """Tests for merged directory listings."""

    def test_merged_and_deduplicated(self, union, top, bottom):
        """Test that each name appears once, in layer order."""
        VfsPath(top).join("d").create_dir()
        VfsPath(top).join("d/x").write_text("x")
        VfsPath(top).join("d/shared").write_text("top")
        VfsPath(bottom).join("d").create_dir()
        VfsPath(bottom).join("d/shared").write_text("bottom")
        VfsPath(bottom).join("d/y").write_text("y")

        names = [entry.name for entry in union.join("d").read_dir()]

        assert names == ["x", "shared", "y"]
        assert union.join("d/shared").read_to_string() == "top"

    def test_directory_only_in_bottom(self, union, bottom):
        """Test listing a directory that only a lower layer has."""
        VfsPath(bottom).join("only/f").parent().create_dir()
        VfsPath(bottom).join("only/f").write_text("f")

        assert [entry.name for entry in union.join("only").read_dir()] == ["f"]

    def test_top_file_over_bottom_directory(self, union, top, bottom):
        """Test that a file in the top layer hides a lower directory."""
        VfsPath(bottom).join("x").create_dir()
        VfsPath(top).join("x").write_text("file")

        with pytest.raises(OtherError):
            union.join("x").read_dir()
        assert union.join("x").is_file()

    def test_walk(self, union, top, bottom):
        """Test walking the merged tree."""
        VfsPath(bottom).join("a").create_dir()
        VfsPath(bottom).join("a/low.txt").write_text("l")
        VfsPath(top).join("top.txt").write_text("t")

        walked = [entry.path.as_str() for entry in union.walk_dir()]

        assert walked == ["/top.txt", "/a", "/a/low.txt"]

    def test_missing_directory(self, union):
        """Test listing a directory no layer has."""
        with pytest.raises(NotFoundError):
            union.join("nope").read_dir()


# =============================================================================
# Copy-Up Tests
# =============================================================================

class TestCopyUp:
    """Tests for copy-up into the top layer."""

    def test_parent_copied_up_empty(self, union, top, bottom):
        """Test that writing below a lower directory recreates only the directory."""
        VfsPath(bottom).join("dir").create_dir()
        VfsPath(bottom).join("dir/other.txt").write_text("other")

        union.join("dir/file.txt").write_text("new")

        assert top.metadata("/dir").is_dir
        assert [entry.name for entry in top.read_dir("/dir")] == ["file.txt"]
        assert [entry.name for entry in bottom.read_dir("/dir")] == ["other.txt"]
        assert sorted(entry.name for entry in union.join("dir").read_dir()) == [
            "file.txt",
            "other.txt",
        ]

    def test_deep_parents(self, union, top, bottom):
        """Test that every missing ancestor is copied up."""
        VfsPath(bottom).join("a/b/c").create_dir_all()

        union.join("a/b/c/f").write_text("x")

        assert top.metadata("/a/b/c").is_dir
        assert top.exists("/a/b/c/f")

    def test_create_dir_copies_parents(self, union, top, bottom):
        """Test create_dir below a lower directory."""
        VfsPath(bottom).join("base").create_dir()

        union.join("base/new").create_dir()

        assert top.metadata("/base/new").is_dir

    def test_create_dir_existing_in_lower(self, union, bottom):
        """Test that a directory visible through the union already exists."""
        VfsPath(bottom).join("d").create_dir()

        with pytest.raises(AlreadyExistsError):
            union.join("d").create_dir()

    def test_create_file_over_lower_directory(self, union, bottom):
        """Test that a file may not shadow a lower directory."""
        VfsPath(bottom).join("d").create_dir()

        with pytest.raises(AlreadyExistsError):
            union.join("d").create_file()

    def test_append_copies_file_up(self, union, top, bottom):
        """Test that appending to a lower file works on a top copy."""
        VfsPath(bottom).join("log").write_text("a")

        with union.join("log").append_file() as handle:
            handle.write(b"b")

        assert union.join("log").read_to_string() == "ab"
        assert VfsPath(top).join("log").read_to_string() == "ab"
        assert VfsPath(bottom).join("log").read_to_string() == "a"

    def test_append_to_lower_directory(self, union, bottom):
        """Test that a lower directory cannot be appended to."""
        VfsPath(bottom).join("d").create_dir()

        with pytest.raises(OtherError):
            union.join("d").append_file()


# =============================================================================
# Removal Tests
# =============================================================================

class TestRemoval:
    """Tests for removal semantics."""

    def test_removed_file_reappears_from_lower(self, union, top, bottom):
        """Test that deleting from the top lets the lower copy show through."""
        VfsPath(bottom).join("f").write_text("lower")
        union.join("f").write_text("upper")

        union.join("f").remove_file()

        assert union.join("f").read_to_string() == "lower"

    def test_remove_lower_only(self, union, bottom):
        """Test that a lower-only file cannot be removed."""
        VfsPath(bottom).join("f").write_text("lower")

        with pytest.raises(NotSupportedError):
            union.join("f").remove_file()
        assert bottom.exists("/f")

    def test_remove_missing(self, union):
        """Test removing a path no layer has."""
        with pytest.raises(NotFoundError):
            union.join("nope").remove_file()

    def test_remove_top_dir(self, union, top):
        """Test removing a directory held by the top layer."""
        union.join("d").create_dir()

        union.join("d").remove_dir()

        assert not top.exists("/d")

    def test_time_setter_lower_only(self, union, bottom):
        """Test that lower-only paths have read-only times."""
        VfsPath(bottom).join("f").write_text("x")

        with pytest.raises(NotSupportedError):
            union.join("f").set_modification_time(datetime.now(timezone.utc))


# =============================================================================
# Read-Only Layer Tests
# =============================================================================

class TestReadOnlyLayers:
    """Tests with EmbeddedFS layers."""

    def test_embedded_bottom(self, top):
        """Test static assets under a writable layer."""
        assets = EmbeddedFS({"/static/app.css": b"body {}"})
        union = VfsPath(OverlayFS([top, assets]))

        union.join("static/site.css").write_text("h1 {}")

        assert union.join("static/app.css").read_to_string() == "body {}"
        assert sorted(e.name for e in union.join("static").read_dir()) == ["app.css", "site.css"]

    def test_embedded_top(self, bottom):
        """Test that a read-only top layer refuses writes."""
        union = VfsPath(OverlayFS([EmbeddedFS({"/a": b"a"}), bottom]))

        with pytest.raises(NotSupportedError):
            union.join("new.txt").write_text("x")
        with pytest.raises(NotSupportedError):
            union.join("a").remove_file()
