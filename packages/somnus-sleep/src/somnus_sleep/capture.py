"""Per-turn hooks for a chat host: memory recall before a turn, capture after it."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from somnus_core.logging import get_logger
from somnus_runtime.options import build_add_options, build_search_options

from somnus_sleep.identity import (
    build_alias_lookup,
    is_group_chat,
    load_identity_map,
    resolve_canonical_user_id,
    resolve_user_id,
)
from somnus_sleep.log_store import append_to_log
from somnus_sleep.sanitizer import MEMORY_CONTEXT_MARKER, build_log_entry, extract_text

if TYPE_CHECKING:
    from somnus_core.config import SomnusConfig
    from somnus_core.types import AddResult, LogEntry, MemoryItem, SessionContext
    from somnus_runtime.protocols import MemoryStore

logger = get_logger("sleep.capture")

_MIN_PROMPT_CHARS = 5
_CAPTURE_WINDOW = 10
_MEMORY_CONTEXT_END = "</relevant-memories>"


def render_memory_context(
    long_term: list[MemoryItem], session: list[MemoryItem]
) -> str:
    """The ``<relevant-memories>`` block injected ahead of a turn."""
    lines: list[str] = []
    for item in long_term:
        suffix = f" [{', '.join(item.categories)}]" if item.categories else ""
        lines.append(f"- {item.memory}{suffix}")
    if session:
        if lines:
            lines.append("")
        lines.append("Session memories:")
        lines.extend(f"- {item.memory}" for item in session)
    return (
        f"{MEMORY_CONTEXT_MARKER}\n"
        "The following memories may be relevant to this conversation:\n"
        + "\n".join(lines)
        + f"\n{_MEMORY_CONTEXT_END}"
    )


def _store_messages(messages: list[Any]) -> list[dict[str, str]]:
    formatted: list[dict[str, str]] = []
    for msg in messages[-_CAPTURE_WINDOW:]:
        if not isinstance(msg, dict):
            continue
        role = msg.get("role")
        if role not in ("user", "assistant"):
            continue
        text = extract_text(msg.get("content"), images=False)
        if not text or MEMORY_CONTEXT_MARKER in text:
            continue
        formatted.append({"role": role, "content": text})
    return formatted


class TurnCapture:
    """Hooks a chat host calls around each agent turn.

    ``recall`` searches the store for memories relevant to the incoming
    prompt. ``capture`` writes the finished turn to cold storage and, when
    a store is attached, hands its recent messages to the store's own
    extraction.

    The session context is passed in on every call; the capture keeps no
    per-session state of its own. The identity map is read once at
    construction.
    """

    def __init__(
        self,
        config: SomnusConfig,
        store: MemoryStore | None = None,
        *,
        alias_lookup: dict[str, str] | None = None,
    ) -> None:
        self._config = config
        self._store = store
        if alias_lookup is None:
            identity_map = load_identity_map(config.identity_map_path)
            alias_lookup = build_alias_lookup(identity_map)
            if identity_map is not None:
                logger.info(
                    "Loaded identity map with %d identities",
                    len(identity_map.identities),
                )
        self._lookup = alias_lookup

    @property
    def log_dir(self) -> Path:
        return self._config.log_dir

    def resolve_user(self, ctx: SessionContext) -> str:
        """Canonical user for *ctx*, falling back to the configured default user."""
        raw_id = resolve_user_id(ctx)
        if raw_id == "default":
            raw_id = self._config.memory.user_id
        return resolve_canonical_user_id(raw_id, self._lookup)

    def _skip_group(self, ctx: SessionContext) -> bool:
        return self._config.identity.skip_group_chats and is_group_chat(ctx)

    # ── Before the turn ────────────────────────────────

    async def recall(self, ctx: SessionContext, prompt: str) -> str | None:
        """Memories relevant to *prompt*, rendered for the system context.

        Searches the user's long-term memories and, when the session is
        known, the memories scoped to it. Returns None when recall is off,
        nothing matched or the store failed. Never raises.
        """
        if self._store is None or not self._config.memory.auto_recall:
            return None
        if not prompt or len(prompt) < _MIN_PROMPT_CHARS:
            return None
        if self._skip_group(ctx):
            logger.debug("Skipping group chat recall")
            return None

        memory = self._config.memory
        user_id = self.resolve_user(ctx)
        try:
            long_term = await self._store.search(
                prompt, build_search_options(memory, user_id)
            )
            session: list[MemoryItem] = []
            if ctx.session_key:
                session = await self._store.search(
                    prompt,
                    build_search_options(memory, user_id, run_id=ctx.session_key),
                )
        except Exception:
            logger.warning("Memory recall failed", exc_info=True)
            return None

        seen = {item.id for item in long_term}
        session = [item for item in session if item.id not in seen]
        if not long_term and not session:
            return None

        logger.info(
            "Injecting %d memories (%d long-term, %d session)",
            len(long_term) + len(session),
            len(long_term),
            len(session),
        )
        return render_memory_context(long_term, session)

    # ── After the turn ─────────────────────────────────

    async def capture(
        self,
        ctx: SessionContext,
        messages: list[Any],
        *,
        success: bool = True,
    ) -> LogEntry | None:
        """Append the turn's cleaned messages to today's log.

        With a store attached, the last messages of the turn are also sent
        to ``MemoryStore.add`` scoped to the session. Returns the written
        entry, or None when the turn was skipped or nothing loggable
        remained. Never raises.
        """
        if not success or not messages:
            return None
        if self._skip_group(ctx):
            logger.debug("Skipping group chat capture")
            return None

        user_id = self.resolve_user(ctx)
        entry: LogEntry | None = None
        try:
            entry = build_log_entry(
                messages,
                user_id=user_id,
                channel=resolve_user_id(ctx),
                session_id=ctx.session_key or "unknown",
                max_tool_result_chars=self._config.sleep.max_tool_result_chars,
            )
            if entry is not None:
                append_to_log(self.log_dir, entry)
        except Exception:
            logger.warning("Sleep log append failed", exc_info=True)
            entry = None

        await self._promote(ctx, user_id, messages)
        return entry

    async def _promote(
        self, ctx: SessionContext, user_id: str, messages: list[Any]
    ) -> AddResult | None:
        if self._store is None or not self._config.memory.auto_capture:
            return None
        formatted = _store_messages(messages)
        if not formatted:
            return None

        try:
            result = await self._store.add(
                formatted,
                build_add_options(self._config.memory, user_id, run_id=ctx.session_key),
            )
        except Exception:
            logger.warning("Memory capture failed", exc_info=True)
            return None

        if result.results:
            logger.info("Captured %d memories", len(result.results))
        return result
