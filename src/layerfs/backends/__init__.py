"""Concrete and composite layerfs backends."""

from .altroot import AltrootFS
from .embedded import EmbeddedFS
from .memory import MemoryFS, MemoryWriteHandle
from .overlay import OverlayFS
from .physical import PhysicalFS

__all__ = [
    "AltrootFS",
    "EmbeddedFS",
    "MemoryFS",
    "MemoryWriteHandle",
    "OverlayFS",
    "PhysicalFS",
]
