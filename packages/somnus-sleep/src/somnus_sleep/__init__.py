from __future__ import annotations

from somnus_sleep.analysis import (
    build_sleep_analysis_prompt,
    merge_analyses,
    parse_sleep_analysis,
)
from somnus_sleep.capture import TurnCapture, render_memory_context
from somnus_sleep.chunker import chunk_for_analysis, render_entry
from somnus_sleep.digest import render_digest, save_digest
from somnus_sleep.identity import (
    add_alias,
    build_alias_lookup,
    is_group_chat,
    load_identity_map,
    resolve_canonical_user_id,
    resolve_user_id,
    save_identity_map,
)
from somnus_sleep.log_store import (
    append_to_log,
    find_unprocessed_logs,
    get_processed_dates,
    mark_processed,
    read_daily_log,
    search_logs,
)
from somnus_sleep.sanitizer import build_log_entry, clean_messages
from somnus_sleep.scheduler import (
    DayOutcome,
    DayReport,
    MaintenanceReport,
    MaintenanceScheduler,
)
from somnus_sleep.sessions import SessionMessage, read_host_sessions
from somnus_sleep.tools import ToolOutput, run_maintenance, search_logs_tool

__all__ = [
    "DayOutcome",
    "DayReport",
    "MaintenanceReport",
    "MaintenanceScheduler",
    "SessionMessage",
    "ToolOutput",
    "TurnCapture",
    "add_alias",
    "append_to_log",
    "build_alias_lookup",
    "build_log_entry",
    "build_sleep_analysis_prompt",
    "chunk_for_analysis",
    "clean_messages",
    "find_unprocessed_logs",
    "get_processed_dates",
    "is_group_chat",
    "load_identity_map",
    "mark_processed",
    "merge_analyses",
    "parse_sleep_analysis",
    "read_daily_log",
    "read_host_sessions",
    "render_digest",
    "render_memory_context",
    "render_entry",
    "resolve_canonical_user_id",
    "resolve_user_id",
    "run_maintenance",
    "save_digest",
    "save_identity_map",
    "search_logs",
    "search_logs_tool",
]
