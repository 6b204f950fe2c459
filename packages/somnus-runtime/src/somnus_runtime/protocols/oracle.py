from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TextOracle(Protocol):
    """Text-generation service: prompt in, free text out."""

    async def complete(self, prompt: str) -> str: ...
