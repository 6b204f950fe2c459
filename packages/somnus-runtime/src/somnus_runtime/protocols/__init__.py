"""Protocol interfaces for the somnus pluggable runtime."""
from __future__ import annotations

from somnus_runtime.protocols.memory_store import MemoryStore
from somnus_runtime.protocols.oracle import TextOracle

__all__ = [
    "MemoryStore",
    "TextOracle",
]
