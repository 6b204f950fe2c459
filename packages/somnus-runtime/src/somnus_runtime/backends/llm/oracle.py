from __future__ import annotations

import asyncio
import os
from typing import TYPE_CHECKING, Any

import dspy
from somnus_core.errors import OracleError
from somnus_core.logging import get_logger

if TYPE_CHECKING:
    from somnus_core.config import LLMConfig

logger = get_logger("runtime.oracle")


def lm_model_name(config: LLMConfig) -> str:
    """Map a provider/model pair onto a LiteLLM model string."""
    if config.provider == "anthropic":
        return f"anthropic/{config.model}"
    if config.provider == "openai":
        return f"openai/{config.model}"
    if config.provider == "ollama":
        return f"ollama_chat/{config.model}"
    return config.model


def build_lm(config: LLMConfig) -> dspy.LM:
    kwargs: dict[str, Any] = {
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
    }
    api_key = os.environ.get(config.api_key_env)
    if config.provider == "ollama":
        api_key = "ollama"
    if api_key:
        kwargs["api_key"] = api_key
    if config.base_url:
        kwargs["api_base"] = config.base_url
    return dspy.LM(lm_model_name(config), **kwargs)


class DSPyOracle:
    """Raw prompt completion through a ``dspy.LM``.

    The LM call is blocking, so it runs in a worker thread.
    """

    def __init__(self, lm: dspy.LM) -> None:
        self._lm = lm

    @classmethod
    def from_config(cls, config: LLMConfig) -> DSPyOracle:
        return cls(build_lm(config))

    async def complete(self, prompt: str) -> str:
        try:
            outputs = await asyncio.to_thread(self._lm, prompt)
        except Exception as exc:
            raise OracleError(f"LLM call failed: {exc}") from exc

        if not outputs:
            raise OracleError("LLM returned no completions")
        first = outputs[0]
        if isinstance(first, dict):
            first = first.get("text") or ""
        text = str(first).strip()
        if not text:
            raise OracleError("LLM returned an empty completion")
        logger.debug("Oracle returned %d chars", len(text))
        return text
