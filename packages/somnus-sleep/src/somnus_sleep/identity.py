"""Per-user identity resolution across chat channels.

A user ID is derived from the host's session key
(``agent:<agentId>:<provider>:<peerId>`` → ``<provider>:<peerId>``).
Several channel-specific IDs (aliases) can then be unified under one
canonical ID through ``identity-map.json``.
"""
from __future__ import annotations

import json
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from somnus_core.logging import get_logger
from somnus_core.types import IdentityEntry, IdentityMap

if TYPE_CHECKING:
    from somnus_core.types import SessionContext

logger = get_logger("sleep.identity")


def short_hash(value: str) -> str:
    """Deterministic 8-hex-char hash of a string.

    A 32-bit rolling ``h * 31 + c`` over UTF-16 code units, so the same
    session key hashes identically on every platform.
    """
    h = 0
    for (unit,) in struct.iter_unpack("<H", value.encode("utf-16-le")):
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 1 << 32
    return format(abs(h), "x").rjust(8, "0")[:8]


def resolve_user_id(ctx: SessionContext) -> str:
    """Resolve a user ID from the host context.

    Priority:
    1. ``<provider>:<peer>`` parsed from a 4+ part session key; the peer
       keeps any further colons (``agent:main:discord:guild:u1`` →
       ``discord:guild:u1``)
    2. ``<provider>:<hash>`` when the context names a provider
    3. ``session:<hash>`` when only a session key is known
    4. ``"default"``
    """
    session_key = ctx.session_key or ""

    parts = session_key.split(":")
    if len(parts) >= 4:
        provider_part = parts[2]
        peer_part = ":".join(parts[3:])
        if provider_part and peer_part:
            return f"{provider_part}:{peer_part}"

    if ctx.provider and session_key:
        return f"{ctx.provider}:{short_hash(session_key)}"

    if session_key:
        return f"session:{short_hash(session_key)}"

    return "default"


def is_group_chat(ctx: SessionContext) -> bool:
    """Heuristic: Telegram negative chat IDs, ``:group:`` or ``:channel:`` keys."""
    session_key = ctx.session_key or ""
    if "telegram:" in session_key and "-" in session_key:
        if session_key.split(":")[-1].startswith("-"):
            return True
    return ":group:" in session_key or ":channel:" in session_key


# ── Identity map ─────────────────────────────────────────────


def load_identity_map(path: str | Path | None) -> IdentityMap | None:
    """Load identity-map.json, or None if it is missing or malformed."""
    if not path:
        return None
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(raw, dict) or not isinstance(raw.get("identities"), list):
            return None
        return IdentityMap.from_dict(raw)
    except (OSError, ValueError, KeyError, TypeError, AttributeError):
        logger.debug("Failed to load identity map %s", path, exc_info=True)
        return None


def save_identity_map(path: str | Path, identity_map: IdentityMap) -> None:
    Path(path).write_text(
        json.dumps(identity_map.to_dict(), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )


def build_alias_lookup(identity_map: IdentityMap | None) -> dict[str, str] | None:
    """Index aliases (and each canonical ID itself) to their canonical ID."""
    if identity_map is None:
        return None
    lookup: dict[str, str] = {}
    for entry in identity_map.identities:
        for alias in entry.aliases:
            lookup[alias] = entry.canonical
        lookup[entry.canonical] = entry.canonical
    return lookup


def resolve_canonical_user_id(raw_id: str, lookup: dict[str, str] | None) -> str:
    if not lookup:
        return raw_id
    return lookup.get(raw_id, raw_id)


@dataclass(frozen=True, slots=True)
class AliasResult:
    added: bool
    entry: IdentityEntry


def add_alias(
    identity_map: IdentityMap,
    canonical: str,
    alias: str,
    label: str | None = None,
) -> AliasResult:
    """Link *alias* to *canonical*, mutating *identity_map* in place.

    An alias belongs to at most one identity: if another canonical entry
    owns it, it is detached there first. The target entry is created
    (with *label*) when missing.
    """
    for entry in identity_map.identities:
        if alias in entry.aliases:
            if entry.canonical == canonical:
                return AliasResult(added=False, entry=entry)
            entry.aliases = [a for a in entry.aliases if a != alias]
            break

    target = next(
        (e for e in identity_map.identities if e.canonical == canonical),
        None,
    )
    if target is None:
        target = IdentityEntry(canonical=canonical, label=label)
        identity_map.identities.append(target)

    if alias in target.aliases:
        return AliasResult(added=False, entry=target)
    target.aliases.append(alias)
    return AliasResult(added=True, entry=target)
