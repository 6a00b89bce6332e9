"""
Virtual Filesystem Exception Hierarchy

This module defines the exception hierarchy shared by every layerfs backend
and by the path layer on top of them.

The hierarchy is designed to:
1. Map every failure onto a small, fixed taxonomy (see ErrorKind)
2. Carry the backend path an error concerned
3. Accumulate human-readable context as an error travels outwards
4. Serialize to a dictionary for structured logging
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(Enum):
    """Category of a filesystem failure."""

    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    INVALID_PATH = "invalid_path"
    NOT_SUPPORTED = "not_supported"
    IO_ERROR = "io_error"
    OTHER = "other"


class VfsError(Exception):
    """
    Base exception class for all layerfs errors.

    Attributes:
        error_code: Unique error code for programmatic handling
        kind: Category of the failure
        path: Backend path the error concerned (if known)
        contexts: Context lines, innermost first
        timestamp: When the error occurred
        context: Additional context information
    """

    kind: ErrorKind = ErrorKind.OTHER
    default_code: str = "VFS_ERROR"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.path = path
        self.error_code = error_code or self.default_code
        self.contexts: List[str] = []
        self.timestamp = time.time()
        self.context = context or {}

    def with_path(self, path: str) -> "VfsError":
        """Record the path this error concerns, keeping the innermost one."""
        if self.path is None:
            self.path = path
        return self

    def with_context(self, message: str) -> "VfsError":
        """Append an outer context line to this error."""
        self.contexts.append(message)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "kind": self.kind.value,
            "message": self.message,
            "path": self.path,
            "contexts": list(self.contexts),
            "timestamp": self.timestamp,
            "context": self.context,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}]"]
        chain = list(reversed(self.contexts)) + [self.message]
        parts.append(": ".join(chain))
        if self.path is not None:
            parts.append(f"(path: {self.path})")
        return " ".join(parts)


class NotFoundError(VfsError):
    """Raised when a file or directory does not exist."""

    kind = ErrorKind.NOT_FOUND
    default_code = "NOT_FOUND"

    def __init__(self, message: str = "The file or directory could not be found", **kwargs):
        super().__init__(message, **kwargs)


class AlreadyExistsError(VfsError):
    """
    Raised when a non-recursive create collides with an existing entry.

    ``file_type`` tells whether the existing entry is a file or a directory,
    which lets recursive directory creation tolerate concurrent creators.
    """

    kind = ErrorKind.ALREADY_EXISTS
    default_code = "ALREADY_EXISTS"

    def __init__(
        self,
        message: str = "The file or directory already exists",
        file_type: Optional[Any] = None,
        **kwargs,
    ):
        self.file_type = file_type
        context = kwargs.pop("context", None) or {}
        if file_type is not None:
            context["file_type"] = getattr(file_type, "value", file_type)
        super().__init__(message, context=context, **kwargs)


class InvalidPathError(VfsError):
    """
    Raised for paths that cannot be normalized.

    Examples:
    - '..' past the root
    - segments containing a NUL character
    - a path outside a translated root
    """

    kind = ErrorKind.INVALID_PATH
    default_code = "INVALID_PATH"

    def __init__(self, message: str = "The path is invalid", **kwargs):
        super().__init__(message, **kwargs)


class NotSupportedError(VfsError):
    """Raised when a backend lacks a capability (e.g. mutating a read-only layer)."""

    kind = ErrorKind.NOT_SUPPORTED
    default_code = "NOT_SUPPORTED"

    def __init__(self, message: str = "Functionality not supported by this filesystem", **kwargs):
        super().__init__(message, **kwargs)


class BackendIOError(VfsError):
    """Wraps an underlying host I/O failure. The original OSError is kept as __cause__."""

    kind = ErrorKind.IO_ERROR
    default_code = "IO_ERROR"

    def __init__(self, message: str, os_error: Optional[OSError] = None, **kwargs):
        self.os_error = os_error
        context = kwargs.pop("context", None) or {}
        if os_error is not None:
            context["errno"] = os_error.errno
            context["strerror"] = os_error.strerror
        super().__init__(message, context=context, **kwargs)
        if os_error is not None:
            self.__cause__ = os_error


class OtherError(VfsError):
    """Opaque backend-specific failure (non-empty directory, wrong node kind, ...)."""

    kind = ErrorKind.OTHER
    default_code = "FILESYSTEM_ERROR"
