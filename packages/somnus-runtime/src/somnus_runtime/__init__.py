"""Somnus Runtime: store and oracle protocols, backends, and wiring."""
from __future__ import annotations

from somnus_runtime.builder import RuntimeBuilder
from somnus_runtime.context import RuntimeContext
from somnus_runtime.options import (
    build_add_options,
    build_list_options,
    build_search_options,
)
from somnus_runtime.protocols import MemoryStore, TextOracle

__all__ = [
    "MemoryStore",
    "RuntimeBuilder",
    "RuntimeContext",
    "TextOracle",
    "build_add_options",
    "build_list_options",
    "build_search_options",
]
