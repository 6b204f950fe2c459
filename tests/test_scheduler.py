"""Tests for the sleep-mode maintenance run."""
from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from conftest import FakeOracle, make_entry, write_log
from somnus_core.config import SomnusConfig
from somnus_core.errors import InvalidDateError, MaintenanceError
from somnus_core.types import AddOptions
from somnus_runtime.backends.memory import InProcessMemoryStore
from somnus_sleep.log_store import get_processed_dates, mark_processed
from somnus_sleep.scheduler import DayOutcome, MaintenanceScheduler, validate_date

TODAY = "2026-02-10"


def _with_sleep(config: SomnusConfig, **changes) -> SomnusConfig:
    return dataclasses.replace(config, sleep=dataclasses.replace(config.sleep, **changes))


def _write_day(log_dir: Path, date: str, *texts: str) -> None:
    write_log(log_dir, date, *[
        make_entry(f"{date}T{9 + i:02d}:00:00.000Z", ("user", text), ("assistant", "noted"))
        for i, text in enumerate(texts)
    ])


class FlakyStore(InProcessMemoryStore):
    """Fails ``add`` for the given number of calls, then behaves."""

    def __init__(self, failures: int = 1) -> None:
        super().__init__()
        self._failures = failures

    async def add(self, messages, options):
        if self._failures:
            self._failures -= 1
            raise RuntimeError("store unavailable")
        return await super().add(messages, options)


class TestValidateDate:
    def test_valid(self):
        assert validate_date("2026-02-07") == "2026-02-07"

    @pytest.mark.parametrize("bad", ["2026-2-7", "yesterday", "2026-02-07T00:00", ""])
    def test_invalid(self, bad: str):
        with pytest.raises(InvalidDateError):
            validate_date(bad)


class TestDiscovery:
    async def test_nothing_to_do(self, config, memory_store):
        report = await MaintenanceScheduler(memory_store, config).run(today=TODAY)
        assert report.candidates == []
        assert report.days == []

    async def test_dry_run_touches_nothing(self, config, log_dir, memory_store):
        _write_day(log_dir, "2026-02-07", "I live in Berlin")
        _write_day(log_dir, "2026-02-08", "I drink tea")

        report = await MaintenanceScheduler(memory_store, config).run(
            dry_run=True, today=TODAY
        )

        assert report.dry_run
        assert [c.date for c in report.candidates] == ["2026-02-07", "2026-02-08"]
        assert report.days == []
        assert get_processed_dates(log_dir) == set()
        assert await memory_store.get_all(_list(config)) == []
        assert not config.digest_dir.exists()

    async def test_invalid_explicit_date_aborts(self, config, log_dir, memory_store):
        _write_day(log_dir, "2026-02-07", "I live in Berlin")
        with pytest.raises(InvalidDateError, match="Expected YYYY-MM-DD"):
            await MaintenanceScheduler(memory_store, config).run("07/02/2026")
        assert get_processed_dates(log_dir) == set()

    async def test_explicit_date_reprocesses(self, config, log_dir, memory_store):
        _write_day(log_dir, "2026-02-07", "I live in Berlin")
        mark_processed(log_dir, "2026-02-07")

        report = await MaintenanceScheduler(memory_store, config).run("2026-02-07")
        assert [d.outcome for d in report.days] == [DayOutcome.PROCESSED]
        assert report.added == 1

    async def test_digest_dir_failure_is_fatal(self, config, log_dir, memory_store):
        _write_day(log_dir, "2026-02-07", "I live in Berlin")
        config.project_dir.joinpath("memory").mkdir(exist_ok=True)
        config.digest_dir.write_text("not a directory")

        with pytest.raises(MaintenanceError):
            await MaintenanceScheduler(memory_store, config).run(today=TODAY)
        assert get_processed_dates(log_dir) == set()


class TestStoreExtraction:
    async def test_promotes_and_writes_digest(self, config, log_dir, memory_store):
        _write_day(log_dir, "2026-02-07", "My server is 10.0.0.5", "I prefer vim")

        report = await MaintenanceScheduler(memory_store, config).run(today=TODAY)

        [day] = report.days
        assert day.outcome is DayOutcome.PROCESSED
        assert (day.entries, day.chunks, day.added, day.updated) == (2, 1, 2, 0)
        assert get_processed_dates(log_dir) == {"2026-02-07"}

        memories = {m.memory for m in await memory_store.get_all(_list(config))}
        assert memories == {"My server is 10.0.0.5", "I prefer vim"}

        digest = (config.digest_dir / "2026-02-07.md").read_text()
        assert day.digest_path == config.digest_dir / "2026-02-07.md"
        assert "Processed 2 conversations from 2026-02-07." in digest
        assert "- My server is 10.0.0.5" in digest

    async def test_only_recent_messages(self, config, log_dir, memory_store):
        config = _with_sleep(config, recent_message_limit=2)
        _write_day(log_dir, "2026-02-07", "old fact", "new fact")

        await MaintenanceScheduler(memory_store, config).run(today=TODAY)

        memories = [m.memory for m in await memory_store.get_all(_list(config))]
        assert memories == ["new fact"]

    async def test_uses_configured_user(self, config, log_dir):
        store = AsyncMock(wraps=InProcessMemoryStore())
        _write_day(log_dir, "2026-02-07", "hello there")

        await MaintenanceScheduler(store, config, user_id="alice").run(today=TODAY)

        options = store.add.await_args.args[1]
        assert isinstance(options, AddOptions)
        assert options.user_id == "alice"

    async def test_empty_day_is_marked(self, config, log_dir, memory_store):
        log_dir.mkdir(parents=True)
        (log_dir / "2026-02-07.jsonl").write_text("{corrupt\n")

        report = await MaintenanceScheduler(memory_store, config).run(today=TODAY)

        assert [d.outcome for d in report.days] == [DayOutcome.EMPTY]
        assert get_processed_dates(log_dir) == {"2026-02-07"}
        assert not (config.digest_dir / "2026-02-07.md").exists()

    async def test_digest_disabled(self, config, log_dir, memory_store):
        config = _with_sleep(config, digest_enabled=False)
        _write_day(log_dir, "2026-02-07", "I live in Berlin")

        report = await MaintenanceScheduler(memory_store, config).run(today=TODAY)

        assert report.days[0].digest_path is None
        assert not config.digest_dir.exists()


class TestFailureIsolation:
    async def test_failed_day_is_retried_later(self, config, log_dir):
        store = FlakyStore(failures=1)
        _write_day(log_dir, "2026-02-07", "I live in Berlin")
        _write_day(log_dir, "2026-02-08", "I drink tea")
        seen = []

        report = await MaintenanceScheduler(store, config, on_day=seen.append).run(
            today=TODAY
        )

        assert [(d.date, d.outcome) for d in report.days] == [
            ("2026-02-07", DayOutcome.FAILED),
            ("2026-02-08", DayOutcome.PROCESSED),
        ]
        assert report.days[0].error == "store unavailable"
        assert seen == report.days
        assert get_processed_dates(log_dir) == {"2026-02-08"}

        retry = await MaintenanceScheduler(store, config).run(today=TODAY)
        assert [(d.date, d.outcome) for d in retry.days] == [
            ("2026-02-07", DayOutcome.PROCESSED),
        ]

    async def test_undecodable_line_does_not_fail_day(self, config, log_dir, memory_store):
        _write_day(log_dir, "2026-02-07", "I live in Berlin")
        with (log_dir / "2026-02-07.jsonl").open("ab") as f:
            f.write(b"\xff\xfe garbage\n")
        _write_day(log_dir, "2026-02-07", "I drink tea")

        report = await MaintenanceScheduler(memory_store, config).run(today=TODAY)

        [day] = report.days
        assert day.outcome is DayOutcome.PROCESSED
        assert day.entries == 2
        assert day.error is None
        assert "2026-02-07" in get_processed_dates(log_dir)

    async def test_undecodable_watermark_line_keeps_other_dates(
        self, config, log_dir, memory_store
    ):
        _write_day(log_dir, "2026-02-07", "I live in Berlin")
        _write_day(log_dir, "2026-02-08", "I drink tea")
        (log_dir / ".processed").write_bytes(b"\xff\n2026-02-07\n")

        report = await MaintenanceScheduler(memory_store, config).run(today=TODAY)

        assert [d.date for d in report.days] == ["2026-02-08"]

    async def test_dedup_fetch_failure_degrades(self, config, log_dir, caplog):
        store = InProcessMemoryStore()
        store.get_all = AsyncMock(side_effect=RuntimeError("boom"))
        _write_day(log_dir, "2026-02-07", "I live in Berlin")

        with caplog.at_level("WARNING", logger="somnus"):
            report = await MaintenanceScheduler(store, config).run(today=TODAY)

        assert report.count(DayOutcome.PROCESSED) == 1
        assert "dedup" in caplog.text


class TestOracleAnalysis:
    def _response(self, *facts: str, digest: str = "") -> str:
        return json.dumps({"hot_facts": list(facts), "digest": digest})

    async def test_each_chunk_is_analyzed(self, config, log_dir, memory_store):
        config = _with_sleep(config, analysis="oracle", max_chunk_chars=100)
        _write_day(log_dir, "2026-02-07", "My server is 10.0.0.5", "I prefer vim")
        oracle = FakeOracle(
            self._response("User's server is 10.0.0.5", digest="Server talk."),
            "```json\n" + self._response("User prefers vim", digest="Editor talk.") + "\n```",
        )

        report = await MaintenanceScheduler(memory_store, config, oracle).run(today=TODAY)

        [day] = report.days
        assert day.outcome is DayOutcome.PROCESSED
        assert (day.chunks, day.added) == (2, 2)
        assert len(oracle.prompts) == 2
        assert "My server is 10.0.0.5" in oracle.prompts[0]
        assert "I prefer vim" in oracle.prompts[1]

        memories = {m.memory for m in await memory_store.get_all(_list(config))}
        assert memories == {"User's server is 10.0.0.5", "User prefers vim"}

        digest = (config.digest_dir / "2026-02-07.md").read_text()
        assert "Server talk. Editor talk." in digest
        assert "- Hot memories: 2" in digest
        assert "- Cold chunks: 2" in digest

    async def test_existing_memories_in_prompt(self, config, log_dir, memory_store):
        config = _with_sleep(config, analysis="oracle")
        await memory_store.add(
            [{"role": "user", "content": "User lives in Berlin"}],
            AddOptions(user_id=config.memory.user_id),
        )
        _write_day(log_dir, "2026-02-07", "I drink tea")
        _write_day(log_dir, "2026-02-08", "I drink coffee too")
        oracle = FakeOracle(self._response("User drinks tea"), self._response())

        await MaintenanceScheduler(memory_store, config, oracle).run(today=TODAY)

        assert "- User lives in Berlin" in oracle.prompts[0]
        assert "- User drinks tea" not in oracle.prompts[0]
        # promoted facts join the dedup list for later days in the same run
        assert "- User drinks tea" in oracle.prompts[1]

    async def test_unparseable_response_fails_day(self, config, log_dir, memory_store):
        config = _with_sleep(config, analysis="oracle")
        _write_day(log_dir, "2026-02-07", "I live in Berlin")
        oracle = FakeOracle("I could not find anything interesting.")

        report = await MaintenanceScheduler(memory_store, config, oracle).run(today=TODAY)

        assert report.days[0].outcome is DayOutcome.FAILED
        assert get_processed_dates(log_dir) == set()
        assert not (config.digest_dir / "2026-02-07.md").exists()


def _list(config: SomnusConfig):
    from somnus_runtime.options import build_list_options
    return build_list_options(config.memory)
