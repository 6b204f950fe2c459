"""DSPy-backed text oracle."""
from __future__ import annotations

from somnus_runtime.backends.llm.oracle import DSPyOracle, build_lm, lm_model_name

__all__ = [
    "DSPyOracle",
    "build_lm",
    "lm_model_name",
]
