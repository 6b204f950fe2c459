from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from somnus_core.errors import ConfigError

_ENV_REF = re.compile(r"\$\{([^}]+)\}")

DEFAULT_CUSTOM_INSTRUCTIONS = """\
Maintain an evolving profile of the user from their conversations with an
AI assistant, so future answers can be personal and context-aware.

Capture: identity and demographics; stated preferences and opinions;
goals and active projects; technical stack, environment and skill level;
people the user mentions and their roles; decisions and lessons learned;
routines and habits; significant life events; infrastructure details such
as hosts, addresses, ports and deployed services; and any rules the user
sets for the assistant's own behavior, tone or persona.

Write each memory as a self-contained third-person statement ("User
prefers ..."), keep it specific, add temporal context when it matters,
and update an existing memory instead of duplicating it.

When the user explicitly asks to remember something, always store it.

Never store credentials, exact financial figures unless asked, ephemeral
one-off details, small talk, raw code, or anything the user asked not to
remember."""

DEFAULT_CUSTOM_CATEGORIES: dict[str, str] = {
    "identity": "Name, age, location, timezone, occupation, education",
    "preferences": "Stated likes, dislikes, opinions and values",
    "goals": "Current and future goals the user is working toward",
    "projects": "Projects and initiatives, with status and details",
    "technical": "Skills, tools, stack, development environment",
    "decisions": "Important decisions, their reasoning and outcomes",
    "relationships": "People the user mentions and their relevance",
    "routines": "Habits, schedules and work patterns",
    "life_events": "Milestones, transitions and upcoming plans",
    "lessons": "Lessons learned and changed beliefs",
    "work": "Job responsibilities and professional context",
    "health": "Health information the user chose to share",
    "infrastructure": "Hosts, IPs, ports, services, deployment, hardware",
    "assistant": "Rules for the assistant's behavior, persona and language",
}


def _load_toml(path: Path) -> dict:
    """Load a TOML file, returning empty dict if missing."""
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except Exception:
        return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base (1 level deep for TOML sections)."""
    merged = dict(base)
    for key, val in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(val, dict)
        ):
            merged[key] = {**merged[key], **val}
        else:
            merged[key] = val
    return merged


def resolve_env_vars(value: str) -> str:
    """Expand ``${VAR}`` references from the environment.

    Raises:
        ConfigError: If a referenced variable is unset or empty.
    """
    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        env_value = os.environ.get(name)
        if not env_value:
            raise ConfigError(f"Environment variable {name} is not set")
        return env_value

    return _ENV_REF.sub(_sub, value)


def resolve_env_vars_deep(obj: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in obj.items():
        if isinstance(value, str):
            result[key] = resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = resolve_env_vars_deep(value)
        else:
            result[key] = value
    return result


@dataclass(frozen=True, slots=True)
class MemoryStoreConfig:
    mode: str = "platform"  # platform | open-source | memory
    api_key: str | None = None
    org_id: str | None = None
    project_id: str | None = None
    user_id: str = "default"
    enable_graph: bool = False
    top_k: int = 5
    search_threshold: float = 0.5
    auto_recall: bool = True
    auto_capture: bool = True
    custom_instructions: str = DEFAULT_CUSTOM_INSTRUCTIONS
    custom_categories: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_CUSTOM_CATEGORIES)
    )
    oss: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class LLMConfig:
    provider: str = "anthropic"
    model: str = "claude-sonnet-4-5"
    api_key_env: str = "ANTHROPIC_API_KEY"
    base_url: str | None = None
    temperature: float = 0.0
    max_tokens: int = 4096


@dataclass(frozen=True, slots=True)
class SleepConfig:
    enabled: bool = False
    log_dir: str = "memory/logs"
    digest_dir: str = "memory/digests"
    max_chunk_chars: int = 4000
    retention_days: int = 365
    digest_enabled: bool = True
    max_tool_result_chars: int = 500
    recent_message_limit: int = 20
    analysis: str = "store"  # store | oracle


@dataclass(frozen=True, slots=True)
class IdentityConfig:
    map_path: str | None = None
    skip_group_chats: bool = True


@dataclass(frozen=True, slots=True)
class SomnusConfig:
    """Top-level configuration, parsed from somnus.toml."""
    project_dir: Path = field(default_factory=Path.cwd)
    memory: MemoryStoreConfig = field(default_factory=MemoryStoreConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    sleep: SleepConfig = field(default_factory=SleepConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)

    def resolve_path(self, path: str | Path) -> Path:
        """Resolve a configured path against the project directory."""
        p = Path(path).expanduser()
        return p if p.is_absolute() else self.project_dir / p

    @property
    def log_dir(self) -> Path:
        return self.resolve_path(self.sleep.log_dir)

    @property
    def digest_dir(self) -> Path:
        return self.resolve_path(self.sleep.digest_dir)

    @property
    def identity_map_path(self) -> Path | None:
        if not self.identity.map_path:
            return None
        return self.resolve_path(self.identity.map_path)

    @classmethod
    def from_toml(
        cls, path: Path | str = "somnus.toml"
    ) -> SomnusConfig:
        path = Path(path)
        raw = _load_toml(path)
        return cls._from_raw(raw, path.parent.resolve())

    @classmethod
    def load(
        cls, project_dir: Path | str | None = None
    ) -> SomnusConfig:
        """Load config with global → project layering.

        Resolution order (later wins):
        1. Built-in defaults
        2. ~/.somnus/config.toml (global)
        3. .somnus/config.toml or somnus.toml (project)
        """
        global_path = Path.home() / ".somnus" / "config.toml"

        project_dir = (
            Path.cwd() if project_dir is None else Path(project_dir)
        )

        project_path = project_dir / ".somnus" / "config.toml"
        if not project_path.exists():
            project_path = project_dir / "somnus.toml"

        global_raw = _load_toml(global_path)
        project_raw = _load_toml(project_path)
        merged = _deep_merge(global_raw, project_raw)

        return cls._from_raw(merged, project_dir)

    @classmethod
    def _from_raw(cls, raw: dict, project_dir: Path) -> SomnusConfig:
        """Build SomnusConfig from a raw TOML dict."""
        memory_raw = dict(raw.get("memory", {}))
        llm_raw = raw.get("llm", {})
        sleep_raw = raw.get("sleep", {})
        identity_raw = raw.get("identity", {})

        def _pick(section: dict, dc: type) -> dict:
            fields = dc.__dataclass_fields__
            return {
                k: v for k, v in section.items() if k in fields
            }

        # "oss" is the legacy spelling of open-source mode
        if memory_raw.get("mode") in ("oss", "open-source"):
            memory_raw["mode"] = "open-source"
        for key in ("api_key", "org_id", "project_id"):
            if isinstance(memory_raw.get(key), str):
                memory_raw[key] = resolve_env_vars(memory_raw[key])
        if isinstance(memory_raw.get("oss"), dict):
            memory_raw["oss"] = resolve_env_vars_deep(memory_raw["oss"])
        if not memory_raw.get("user_id"):
            memory_raw.pop("user_id", None)

        return cls(
            project_dir=project_dir,
            memory=MemoryStoreConfig(
                **_pick(memory_raw, MemoryStoreConfig)
            ),
            llm=LLMConfig(**_pick(llm_raw, LLMConfig)),
            sleep=SleepConfig(**_pick(sleep_raw, SleepConfig)),
            identity=IdentityConfig(
                **_pick(identity_raw, IdentityConfig)
            ),
        )
