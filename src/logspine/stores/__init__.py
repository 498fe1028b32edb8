"""Inner log stores."""

from .memory import MemoryLogStore

__all__ = ["MemoryLogStore"]
