"""Somnus Core: shared types, config, errors, and logging."""
from __future__ import annotations

from somnus_core._version import __version__
from somnus_core.config import (
    IdentityConfig,
    LLMConfig,
    MemoryStoreConfig,
    SleepConfig,
    SomnusConfig,
)
from somnus_core.errors import (
    AnalysisParseError,
    BackendError,
    BackendUnavailableError,
    ConfigError,
    InvalidDateError,
    MaintenanceError,
    OracleError,
    SomnusError,
)
from somnus_core.logging import get_logger, setup_logging
from somnus_core.types import (
    AddOptions,
    AddResult,
    AddResultItem,
    Consolidation,
    DailyLog,
    DigestStats,
    IdentityEntry,
    IdentityMap,
    ListOptions,
    LogEntry,
    LogMessage,
    MemoryEvent,
    MemoryItem,
    SearchHit,
    SearchOptions,
    SessionContext,
    SleepAnalysis,
)

__all__ = [
    # Types
    "AddOptions",
    "AddResult",
    "AddResultItem",
    # Errors
    "AnalysisParseError",
    "BackendError",
    "BackendUnavailableError",
    "ConfigError",
    "Consolidation",
    "DailyLog",
    "DigestStats",
    "IdentityConfig",
    "IdentityEntry",
    "IdentityMap",
    "InvalidDateError",
    # Config
    "LLMConfig",
    "ListOptions",
    "LogEntry",
    "LogMessage",
    "MaintenanceError",
    "MemoryEvent",
    "MemoryItem",
    "MemoryStoreConfig",
    "OracleError",
    "SearchHit",
    "SearchOptions",
    "SessionContext",
    "SleepAnalysis",
    "SleepConfig",
    "SomnusConfig",
    "SomnusError",
    # Version
    "__version__",
    # Logging
    "get_logger",
    "setup_logging",
]
