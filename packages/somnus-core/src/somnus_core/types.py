from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

MessageRole = Literal["user", "assistant", "tool"]

# ── Conversation Log Types ───────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class LogMessage:
    """One cleaned message inside a log entry."""
    role: MessageRole
    content: str
    tool_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_name is not None:
            data["tool_name"] = self.tool_name
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LogMessage:
        tool_name = data.get("tool_name")
        return cls(
            role=data["role"],
            content=str(data["content"]),
            tool_name=tool_name if isinstance(tool_name, str) else None,
        )


@dataclass(frozen=True, slots=True)
class LogEntry:
    """A captured conversation turn-set, immutable once appended.

    Attributes:
        ts: ISO-8601 UTC timestamp of the capture
        user_id: Canonical user ID
        channel: Channel identifier (e.g. "telegram:12345")
        session_id: Session ID used for grouping
        messages: Cleaned messages in conversation order
    """
    ts: str
    user_id: str
    channel: str
    session_id: str
    messages: tuple[LogMessage, ...] = ()

    @property
    def date(self) -> str:
        """Calendar date (YYYY-MM-DD) the entry belongs to."""
        return self.ts.split("T")[0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "ts": self.ts,
            "user_id": self.user_id,
            "channel": self.channel,
            "session_id": self.session_id,
            "messages": [m.to_dict() for m in self.messages],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LogEntry:
        """Build an entry from a decoded JSON object.

        Raises KeyError or TypeError when required fields are missing
        or malformed.
        """
        return cls(
            ts=str(data["ts"]),
            user_id=str(data["user_id"]),
            channel=str(data.get("channel", "")),
            session_id=str(data.get("session_id", "")),
            messages=tuple(LogMessage.from_dict(m) for m in data["messages"]),
        )


@dataclass(frozen=True, slots=True)
class DailyLog:
    """A daily log file on disk, identified by its date."""
    date: str
    path: Path


@dataclass(frozen=True, slots=True)
class SearchHit:
    """A log entry that matched a text search, with a snippet around the match."""
    entry: LogEntry
    match_context: str


# ── Identity Types ───────────────────────────────────────────────────


@dataclass(slots=True)
class IdentityEntry:
    """Links a canonical user ID to its channel-specific aliases."""
    canonical: str
    aliases: list[str] = field(default_factory=list)
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "canonical": self.canonical,
            "aliases": list(self.aliases),
        }
        if self.label is not None:
            data["label"] = self.label
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IdentityEntry:
        aliases = data.get("aliases") or []
        label = data.get("label")
        return cls(
            canonical=str(data["canonical"]),
            aliases=[str(a) for a in aliases],
            label=label if isinstance(label, str) else None,
        )


@dataclass(slots=True)
class IdentityMap:
    """All known identities (the identity-map.json document)."""
    identities: list[IdentityEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"identities": [e.to_dict() for e in self.identities]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IdentityMap:
        return cls(
            identities=[IdentityEntry.from_dict(e) for e in data["identities"]],
        )


@dataclass(frozen=True, slots=True)
class SessionContext:
    """Context handed over by the chat host for one hook or tool call.

    Hook calls carry ``message_provider``; tool calls carry
    ``message_channel``. Either one identifies the channel provider.
    """
    session_key: str | None = None
    agent_id: str | None = None
    message_provider: str | None = None
    message_channel: str | None = None
    workspace_dir: str | None = None

    @property
    def provider(self) -> str:
        return self.message_provider or self.message_channel or ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SessionContext:
        """Accept camelCase host payloads as well as snake_case keys."""
        def _pick(*keys: str) -> str | None:
            for key in keys:
                value = data.get(key)
                if isinstance(value, str) and value:
                    return value
            return None

        return cls(
            session_key=_pick("sessionKey", "session_key"),
            agent_id=_pick("agentId", "agent_id"),
            message_provider=_pick("messageProvider", "message_provider"),
            message_channel=_pick("messageChannel", "message_channel"),
            workspace_dir=_pick("workspaceDir", "workspace_dir"),
        )


# ── Analysis Types ───────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Consolidation:
    """Memories the oracle suggests merging into a single fact."""
    merge_ids: tuple[str, ...] = ()
    into: str = ""


@dataclass(frozen=True, slots=True)
class SleepAnalysis:
    """Structured findings for one day of conversation."""
    hot_facts: tuple[str, ...] = ()
    patterns: tuple[str, ...] = ()
    reflections: tuple[str, ...] = ()
    consolidations: tuple[Consolidation, ...] = ()
    digest: str = ""


@dataclass(frozen=True, slots=True)
class DigestStats:
    """Optional store statistics rendered at the end of a digest."""
    total_hot_memories: int | None = None
    total_cold_chunks: int | None = None


# ── Memory Store Types ───────────────────────────────────────────────


class MemoryEvent(enum.Enum):
    ADD = "ADD"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    NOOP = "NOOP"


@dataclass(frozen=True, slots=True)
class MemoryItem:
    """A memory as returned by any store backend."""
    id: str
    memory: str
    user_id: str | None = None
    score: float | None = None
    categories: tuple[str, ...] | None = None
    metadata: dict[str, Any] | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True, slots=True)
class AddResultItem:
    id: str
    memory: str
    event: MemoryEvent = MemoryEvent.ADD


@dataclass(frozen=True, slots=True)
class AddResult:
    """Changes a store made while ingesting messages."""
    results: tuple[AddResultItem, ...] = ()

    def with_event(self, event: MemoryEvent) -> list[AddResultItem]:
        return [r for r in self.results if r.event is event]

    @property
    def added(self) -> int:
        return len(self.with_event(MemoryEvent.ADD))

    @property
    def updated(self) -> int:
        return len(self.with_event(MemoryEvent.UPDATE))


@dataclass(frozen=True, slots=True)
class AddOptions:
    user_id: str
    run_id: str | None = None
    custom_instructions: str | None = None
    custom_categories: list[dict[str, str]] | None = None
    enable_graph: bool | None = None
    output_format: str | None = None


@dataclass(frozen=True, slots=True)
class SearchOptions:
    user_id: str
    run_id: str | None = None
    top_k: int | None = None
    threshold: float | None = None
    limit: int | None = None
    keyword_search: bool | None = None
    reranking: bool | None = None


@dataclass(frozen=True, slots=True)
class ListOptions:
    user_id: str
    run_id: str | None = None
    page_size: int | None = None
