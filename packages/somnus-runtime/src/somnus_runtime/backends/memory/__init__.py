"""T0 In-Process Backend: zero dependencies, in-memory only."""
from __future__ import annotations

from somnus_runtime.backends.memory.store import InProcessMemoryStore

__all__ = [
    "InProcessMemoryStore",
]
