from __future__ import annotations

import re

from somnus_core.types import LogMessage
from somnus_sleep.sanitizer import (
    build_log_entry,
    clean_messages,
    extract_text,
    strip_base64,
)

_B64 = "data:image/png;base64," + "A" * 120


class TestStripBase64:
    def test_replaces_long_payload(self):
        assert strip_base64(f"look {_B64} here") == "look [base64-data] here"

    def test_keeps_short_payload(self):
        short = "data:image/png;base64," + "A" * 20
        assert strip_base64(short) == short


class TestExtractText:
    def test_string(self):
        assert extract_text("hello") == "hello"

    def test_blocks(self):
        content = [
            {"type": "text", "text": "first"},
            {"type": "image", "source": {}},
            {"type": "text", "text": "second"},
            "junk",
        ]
        assert extract_text(content) == "first\n[image]\nsecond"
        assert extract_text(content, images=False) == "first\nsecond"

    def test_unsupported(self):
        assert extract_text(None) == ""
        assert extract_text(42) == ""


class TestCleanMessages:
    def test_drops_system_and_injected_memories(self):
        messages = [
            {"role": "system", "content": "You are helpful"},
            {"role": "user", "content": "<relevant-memories>x</relevant-memories> hi"},
            {"role": "user", "content": "What is my server IP?"},
            {"role": "assistant", "content": "It is 10.0.0.5"},
        ]
        assert clean_messages(messages) == [
            LogMessage(role="user", content="What is my server IP?"),
            LogMessage(role="assistant", content="It is 10.0.0.5"),
        ]

    def test_truncates_tool_results(self):
        messages = [{"role": "tool", "name": "shell", "content": "x" * 600}]
        [msg] = clean_messages(messages, max_tool_result_chars=500)
        assert msg.role == "tool"
        assert msg.tool_name == "shell"
        assert msg.content == "x" * 500 + " [truncated]"

    def test_user_text_is_not_truncated(self):
        [msg] = clean_messages([{"role": "user", "content": "y" * 900}])
        assert len(msg.content) == 900

    def test_other_roles_become_assistant(self):
        [msg] = clean_messages([{"role": "model", "content": "ok"}])
        assert msg.role == "assistant"
        assert msg.tool_name is None

    def test_skips_empty_and_malformed(self):
        messages = [
            None,
            "text",
            {"content": "no role"},
            {"role": "user", "content": ""},
            {"role": "user", "content": [{"type": "tool_use"}]},
        ]
        assert clean_messages(messages) == []

    def test_scrubs_base64(self):
        [msg] = clean_messages([{"role": "user", "content": f"pic {_B64}"}])
        assert msg.content == "pic [base64-data]"


class TestBuildLogEntry:
    def test_builds_entry(self):
        entry = build_log_entry(
            [{"role": "user", "content": "hello"}],
            user_id="alice",
            channel="telegram:1",
            session_id="agent:main:telegram:1",
        )
        assert entry is not None
        assert entry.user_id == "alice"
        assert entry.channel == "telegram:1"
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", entry.ts)
        assert entry.messages == (LogMessage(role="user", content="hello"),)

    def test_nothing_left(self):
        entry = build_log_entry(
            [{"role": "system", "content": "sys"}],
            user_id="alice",
            channel="c",
            session_id="s",
        )
        assert entry is None
