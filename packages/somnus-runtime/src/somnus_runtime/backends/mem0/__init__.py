"""mem0 backends: hosted platform and self-hosted library.

``mem0ai`` is imported lazily on first use, so these classes can be
constructed without the optional dependency installed.
"""
from __future__ import annotations

from somnus_runtime.backends.mem0.oss import Mem0OSSStore, build_oss_config
from somnus_runtime.backends.mem0.platform import Mem0PlatformStore

__all__ = [
    "Mem0OSSStore",
    "Mem0PlatformStore",
    "build_oss_config",
]
