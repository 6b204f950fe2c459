from __future__ import annotations

import asyncio
from typing import Any

from somnus_core.errors import BackendUnavailableError
from somnus_core.logging import get_logger

logger = get_logger("runtime.mem0")


class LazyClient:
    """Create a mem0 client on first use, once."""

    def __init__(self) -> None:
        self._client: Any = None
        self._lock = asyncio.Lock()

    async def _create(self) -> Any:
        raise NotImplementedError

    async def client(self) -> Any:
        if self._client is not None:
            return self._client
        async with self._lock:
            if self._client is None:
                try:
                    self._client = await self._create()
                except ImportError as exc:
                    raise BackendUnavailableError(
                        "mem0ai is not installed; "
                        "install with: pip install 'somnus[mem0]'"
                    ) from exc
                logger.info("Initialized %s", type(self).__name__)
        return self._client


def drop_none(**kwargs: Any) -> dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not None}
