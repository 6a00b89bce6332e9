"""Path normalization shared by every backend, sync and async alike.

Backend-facing paths are always canonical POSIX strings: ``/`` is the root,
anything else looks like ``/seg1/seg2``. No segment is empty, ``.`` or ``..``.
Everything here is pure and synchronous.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from .exceptions import InvalidPathError

ROOT = "/"
SEPARATOR = "/"


def _resolve(base: Tuple[str, ...], path: str, original: str) -> List[str]:
    """Resolve ``path`` segment by segment starting from ``base``.

    Args:
        base: Segments of an already normalized starting point
        path: The path to resolve (separators and dots allowed)
        original: The caller's input, for error messages

    Returns:
        The resolved segment list

    Raises:
        InvalidPathError: If the path escapes the root via '..' or holds a malformed segment
    """
    normalized: List[str] = list(base)
    for part in path.split(SEPARATOR):
        if part in ("", "."):
            continue
        if part == "..":
            if not normalized:
                raise InvalidPathError(f"Path escapes the root: {original!r}", path=original)
            normalized.pop()
            continue
        if "\x00" in part:
            raise InvalidPathError(f"Path segment contains NUL: {original!r}", path=original)
        normalized.append(part)
    return normalized


def _check_type(path: object) -> None:
    if not isinstance(path, str):
        raise TypeError(f"path must be a str, got {type(path).__name__}")


def normalize(path: str) -> str:
    """Normalize a path to canonical absolute form.

    Relative input is resolved against the root.

    >>> normalize("/a//b/../c")
    '/a/c'
    """
    _check_type(path)
    return from_segments(_resolve((), path, path))


def join(base: str, path: str) -> str:
    """Join ``path`` onto the normalized ``base``.

    An absolute ``path`` discards ``base``; an empty one returns ``base``.
    """
    _check_type(path)
    if not path:
        return base
    start = () if path.startswith(SEPARATOR) else split_segments(base)
    return from_segments(_resolve(start, path, path))


def split_segments(path: str) -> Tuple[str, ...]:
    """Split a normalized path into its segments (root -> empty tuple)."""
    return tuple(part for part in path.split(SEPARATOR) if part)


def from_segments(segments: Iterable[str]) -> str:
    """Build a normalized path string from segments."""
    parts = list(segments)
    return SEPARATOR + SEPARATOR.join(parts) if parts else ROOT


def is_root(path: str) -> bool:
    return path == ROOT


def parent_of(path: str) -> Optional[str]:
    """Parent of a normalized path, or None for the root."""
    segments = split_segments(path)
    if not segments:
        return None
    return from_segments(segments[:-1])


def filename_of(path: str) -> str:
    """Last segment of a normalized path ('' for the root)."""
    segments = split_segments(path)
    return segments[-1] if segments else ""


def extension_of(path: str) -> Optional[str]:
    """Extension of the last segment, None for dotfiles and extensionless names."""
    name = filename_of(path)
    before, dot, after = name.rpartition(".")
    if not dot or not before:
        return None
    return after


def child_of(path: str, name: str) -> str:
    """Path of the direct child ``name`` of a normalized directory path."""
    return path + name if path == ROOT else f"{path}{SEPARATOR}{name}"


def ancestors(path: str) -> List[str]:
    """All proper ancestors of ``path`` except the root, outermost first.

    >>> ancestors("/a/b/c")
    ['/a', '/a/b']
    """
    segments = split_segments(path)
    return [from_segments(segments[:i]) for i in range(1, len(segments))]


def concat(prefix: str, path: str) -> str:
    """Place the normalized ``path`` underneath the normalized ``prefix``."""
    if prefix == ROOT:
        return path
    if path == ROOT:
        return prefix
    return prefix + path


def strip_prefix(prefix: str, path: str) -> str:
    """Inverse of :func:`concat`.

    Raises:
        InvalidPathError: If ``path`` does not live under ``prefix``
    """
    if prefix == ROOT:
        return path
    if path == prefix:
        return ROOT
    if path.startswith(prefix + SEPARATOR):
        return path[len(prefix):]
    raise InvalidPathError(f"Path {path!r} is outside of root {prefix!r}", path=path)


def relative_to(base: str, path: str) -> str:
    """Relative form of ``path`` under ``base`` without a leading separator."""
    return strip_prefix(base, path).lstrip(SEPARATOR)
