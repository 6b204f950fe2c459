from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from somnus_core.config import SomnusConfig

    from somnus_runtime.protocols.memory_store import MemoryStore
    from somnus_runtime.protocols.oracle import TextOracle


@dataclass(slots=True)
class RuntimeContext:
    """Collaborators a maintenance run or capture hook needs.

    Created once at startup by the RuntimeBuilder.
    """
    memory_store: MemoryStore
    config: SomnusConfig
    oracle: TextOracle | None = None
