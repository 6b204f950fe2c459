"""Prompt construction and response parsing for sleep-time analysis.

The oracle reads one day of conversation and answers with a JSON object
carrying new facts, patterns, self-reflections, merge suggestions and a
short digest. Parsing tolerates code fences and missing fields, but not
text that is not JSON at all.
"""
from __future__ import annotations

import json
import re
from typing import Any

from somnus_core.errors import AnalysisParseError
from somnus_core.types import Consolidation, SleepAnalysis

MAX_DEDUP_MEMORIES = 50

_FENCE_OPEN = re.compile(r"^```(?:json)?\n?")
_FENCE_CLOSE = re.compile(r"\n?```$")

_INSTRUCTIONS = """\
You are running overnight memory maintenance for a personal AI assistant.
Read the conversation log from {date} and work through these tasks:

1. EXTRACT facts that are not yet remembered:
   - Personal identity details about the user
   - Technical and infrastructure details mentioned in passing
     (servers, IP addresses, services, ports, configuration)
   - Decisions, preferences and commitments
   - Rules the user set for how the assistant itself should behave

2. FIND patterns:
   - Topics or interests that keep coming back
   - How the user approaches and solves problems
   - Preferred communication style and workflow

3. SELF-REFLECT:
   - What did the assistant learn about the user today?
   - What could the assistant have done better?
   - What should be kept in mind for future conversations?

4. CONSOLIDATE:
   - Which facts duplicate or contradict each other?
   - Which related facts can be merged into one?

Classify every finding into one tier:
- HOT: promote to active memory (important, recalled often)
- PATTERN: a behavioral or interaction pattern worth noting
- DIGEST: mention in the daily summary only
"""

_RESPONSE_FORMAT = """
Respond with a single JSON object of exactly this shape:
{
  "hot_facts": ["fact1", "fact2"],
  "patterns": ["pattern1"],
  "reflections": ["reflection1"],
  "consolidations": [{"merge_ids": ["id1", "id2"], "into": "merged fact text"}],
  "digest": "Short summary of the day's interactions"
}

Rules:
- hot_facts are clear, self-contained, third-person statements
- Include ONLY information that is both new and important
- The digest is 2-4 sentences
- consolidations may be an empty list
- Output ONLY the JSON object, with no markdown fences or other text"""


def build_sleep_analysis_prompt(
    date: str,
    conversation_text: str,
    existing_memories: list[str] | None = None,
) -> str:
    """Build the analysis prompt for one day of conversation.

    Args:
        date: Day being analyzed (YYYY-MM-DD).
        conversation_text: Rendered conversation, appended verbatim.
        existing_memories: Known memories; the first 50 are listed so the
            oracle does not extract them again.
    """
    parts = [_INSTRUCTIONS.format(date=date)]

    if existing_memories:
        parts.append("\nExisting memories (for deduplication):")
        parts.extend(f"- {m}" for m in existing_memories[:MAX_DEDUP_MEMORIES])
        parts.append("\nDo NOT extract facts that already appear in the list above.")

    parts.append(f"\nConversation log:\n{conversation_text}")
    parts.append(_RESPONSE_FORMAT)
    return "\n".join(parts)


def _strings(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(v for v in value if isinstance(v, str))


def _consolidations(value: Any) -> tuple[Consolidation, ...]:
    if not isinstance(value, list):
        return ()
    result = []
    for item in value:
        item = item if isinstance(item, dict) else {}
        into = item.get("into")
        result.append(Consolidation(
            merge_ids=_strings(item.get("merge_ids")),
            into=into if isinstance(into, str) else "",
        ))
    return tuple(result)


def parse_sleep_analysis(response: str) -> SleepAnalysis:
    """Parse an oracle response into a SleepAnalysis.

    Raises:
        AnalysisParseError: If the text (after removing a code fence)
            is not valid JSON.
    """
    cleaned = response.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", cleaned))

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise AnalysisParseError(f"Analysis is not valid JSON: {exc}") from exc

    if not isinstance(parsed, dict):
        parsed = {}
    digest = parsed.get("digest")
    return SleepAnalysis(
        hot_facts=_strings(parsed.get("hot_facts")),
        patterns=_strings(parsed.get("patterns")),
        reflections=_strings(parsed.get("reflections")),
        consolidations=_consolidations(parsed.get("consolidations")),
        digest=digest if isinstance(digest, str) else "",
    )


def merge_analyses(analyses: list[SleepAnalysis]) -> SleepAnalysis:
    """Combine per-chunk analyses of one day, keeping chunk order."""
    return SleepAnalysis(
        hot_facts=tuple(f for a in analyses for f in a.hot_facts),
        patterns=tuple(p for a in analyses for p in a.patterns),
        reflections=tuple(r for a in analyses for r in a.reflections),
        consolidations=tuple(c for a in analyses for c in a.consolidations),
        digest=" ".join(a.digest for a in analyses if a.digest),
    )
