from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from somnus_core.types import DigestStats, SleepAnalysis


def _bullets(title: str, items: tuple[str, ...]) -> list[str]:
    if not items:
        return []
    return [f"## {title}\n", *(f"- {item}" for item in items), ""]


def render_digest(
    date: str,
    analysis: SleepAnalysis,
    stats: DigestStats | None = None,
) -> str:
    """Render the daily digest as Markdown."""
    lines = [f"# Memory Digest — {date}\n"]

    if analysis.digest:
        lines += ["## Summary\n", f"{analysis.digest}\n"]

    lines += _bullets("New Facts Discovered", analysis.hot_facts)
    lines += _bullets("Patterns Noticed", analysis.patterns)
    lines += _bullets("Self-Reflections", analysis.reflections)
    lines += _bullets("Memory Consolidations", tuple(
        f'Merged {len(c.merge_ids)} entries into: "{c.into}"'
        for c in analysis.consolidations
    ))

    if stats is not None:
        lines.append("## Memory Stats\n")
        if stats.total_hot_memories is not None:
            lines.append(f"- Hot memories: {stats.total_hot_memories}")
        if stats.total_cold_chunks is not None:
            lines.append(f"- Cold chunks: {stats.total_cold_chunks}")
        lines.append("")

    return "\n".join(lines)


def save_digest(
    digest_dir: Path,
    date: str,
    analysis: SleepAnalysis,
    stats: DigestStats | None = None,
) -> Path:
    """Write ``<digest_dir>/<date>.md``, replacing any earlier digest for that day."""
    digest_dir = Path(digest_dir)
    digest_dir.mkdir(parents=True, exist_ok=True)
    path = digest_dir / f"{date}.md"
    path.write_text(render_digest(date, analysis, stats), encoding="utf-8")
    return path
