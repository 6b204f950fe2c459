from __future__ import annotations

import json
from pathlib import Path

import pytest
import pytest_asyncio
from somnus_core.config import MemoryStoreConfig, SleepConfig, SomnusConfig
from somnus_core.types import LogEntry, LogMessage


class FakeOracle:
    """Scripted TextOracle: returns queued responses and records prompts."""

    def __init__(self, *responses: str) -> None:
        self._responses = list(responses)
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self._responses:
            return "{}"
        return self._responses.pop(0)


def make_entry(
    ts: str,
    *messages: tuple[str, str],
    user_id: str = "alice",
    session_id: str = "s1",
) -> LogEntry:
    return LogEntry(
        ts=ts,
        user_id=user_id,
        channel="telegram:1",
        session_id=session_id,
        messages=tuple(LogMessage(role=r, content=c) for r, c in messages),
    )


def write_log(log_dir: Path, date: str, *entries: LogEntry) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_dir / f"{date}.jsonl"
    with path.open("a", encoding="utf-8") as f:
        for entry in entries:
            f.write(json.dumps(entry.to_dict()) + "\n")
    return path


@pytest.fixture()
def config(tmp_path: Path) -> SomnusConfig:
    """In-memory store, sleep mode on, all paths under tmp_path."""
    return SomnusConfig(
        project_dir=tmp_path,
        memory=MemoryStoreConfig(mode="memory"),
        sleep=SleepConfig(enabled=True),
    )


@pytest.fixture()
def log_dir(config: SomnusConfig) -> Path:
    return config.log_dir


@pytest_asyncio.fixture
async def memory_store():
    from somnus_runtime.backends.memory import InProcessMemoryStore
    return InProcessMemoryStore()


@pytest.fixture()
def fake_oracle():
    return FakeOracle
