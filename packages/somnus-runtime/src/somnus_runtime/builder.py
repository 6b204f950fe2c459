from __future__ import annotations

from typing import TYPE_CHECKING

from somnus_core.errors import ConfigError
from somnus_core.logging import get_logger

from somnus_runtime.context import RuntimeContext

if TYPE_CHECKING:
    from somnus_core.config import SomnusConfig

    from somnus_runtime.protocols.memory_store import MemoryStore
    from somnus_runtime.protocols.oracle import TextOracle

logger = get_logger("builder")


class RuntimeBuilder:
    """Build a RuntimeContext from configuration.

    Usage:
        config = SomnusConfig.load()
        ctx = RuntimeBuilder(config).build()
    """

    def __init__(self, config: SomnusConfig) -> None:
        self._config = config

    def build(self) -> RuntimeContext:
        return RuntimeContext(
            memory_store=self.build_memory_store(),
            config=self._config,
            oracle=self.build_oracle(),
        )

    def build_memory_store(self) -> MemoryStore:
        mode = self._config.memory.mode
        logger.info("Building memory store for %s mode", mode)

        if mode == "memory":
            from somnus_runtime.backends.memory import InProcessMemoryStore
            return InProcessMemoryStore()
        elif mode == "platform":
            return self._build_platform()
        elif mode == "open-source":
            return self._build_oss()
        else:
            raise ValueError(f"Unknown memory mode: {mode!r}")

    def build_oracle(self) -> TextOracle | None:
        analysis = self._config.sleep.analysis
        if analysis == "store":
            return None
        if analysis != "oracle":
            raise ValueError(f"Unknown sleep analysis mode: {analysis!r}")

        from somnus_runtime.backends.llm import DSPyOracle
        logger.info(
            "Building %s oracle (%s)",
            self._config.llm.provider,
            self._config.llm.model,
        )
        return DSPyOracle.from_config(self._config.llm)

    def _build_platform(self) -> MemoryStore:
        from somnus_runtime.backends.mem0 import Mem0PlatformStore

        memory = self._config.memory
        if not memory.api_key:
            raise ConfigError(
                "api_key is required for platform mode "
                '(set mode = "open-source" for self-hosted)'
            )
        return Mem0PlatformStore(
            api_key=memory.api_key,
            org_id=memory.org_id,
            project_id=memory.project_id,
        )

    def _build_oss(self) -> MemoryStore:
        from somnus_runtime.backends.mem0 import Mem0OSSStore, build_oss_config

        memory = self._config.memory
        config = build_oss_config(
            memory.oss,
            custom_prompt=memory.custom_instructions,
            base_dir=self._config.project_dir,
        )
        return Mem0OSSStore(config)
