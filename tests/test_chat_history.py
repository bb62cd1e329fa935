from __future__ import annotations

import itertools
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from finance_tracker.chat_history import (
    MAX_CHAT_HISTORY,
    WELCOME_MESSAGE,
    ChatHistory,
    ChatHistoryError,
    parse_chat_messages,
)
from finance_tracker.local_store import CHAT_HISTORY_KEY, LocalStore
from finance_tracker.models import UserContext
from tests.helpers.db import chat_contents

ALICE = UserContext("alice")


def _ticking_clock() -> Callable[[], datetime]:
    counter = itertools.count()
    t0 = datetime(2024, 1, 1, tzinfo=UTC)
    return lambda: t0 + timedelta(seconds=next(counter))


def test_empty_history_is_seeded_with_welcome():
    history = ChatHistory(clock=_ticking_clock())
    msgs = history.load()
    assert [(m.sender, m.content) for m in msgs] == [("assistant", WELCOME_MESSAGE)]
    assert LocalStore().read(CHAT_HISTORY_KEY)[0]["content"] == WELCOME_MESSAGE


def test_local_history_is_capped_oldest_first():
    history = ChatHistory(clock=_ticking_clock())
    history.load()
    for i in range(60):
        history.add(f"m{i}", "user")
    assert len(history.messages) == MAX_CHAT_HISTORY
    assert history.messages[0].content == "m10"
    assert history.messages[-1].content == "m59"

    reloaded = ChatHistory().load()
    assert [m.content for m in reloaded] == [m.content for m in history.messages]


def test_local_records_omit_missing_ids():
    history = ChatHistory(clock=_ticking_clock())
    history.add("hi", "user")
    (stored,) = LocalStore().read(CHAT_HISTORY_KEY)
    assert set(stored) == {"content", "sender", "timestamp"}


def test_clear_starts_over_with_welcome():
    history = ChatHistory(clock=_ticking_clock())
    history.load()
    history.add("question", "user")
    assert [m.content for m in history.clear()] == [WELCOME_MESSAGE]
    assert [m.content for m in ChatHistory().load()] == [WELCOME_MESSAGE]


def test_malformed_local_messages_are_skipped():
    assert parse_chat_messages(None) == []
    assert parse_chat_messages({"content": "x"}) == []
    msgs = parse_chat_messages(
        [
            {"content": "ok", "sender": "user", "timestamp": "2024-01-01T00:00:00Z"},
            {"content": "bad sender", "sender": "system", "timestamp": "2024-01-01T00:00:00Z"},
            {"sender": "user"},
        ]
    )
    assert [m.content for m in msgs] == ["ok"]


def test_remote_history_is_capped_in_the_database(sqlite_url: str):
    history = ChatHistory(ALICE, database_url=sqlite_url, clock=_ticking_clock())
    history.load()
    for i in range(MAX_CHAT_HISTORY + 5):
        history.add(f"m{i}", "user")
    stored = chat_contents(database_url=sqlite_url, user_id="alice")
    assert len(stored) == MAX_CHAT_HISTORY
    assert stored[0] == "m5"
    assert [m.content for m in history.messages] == stored

    again = ChatHistory(ALICE, database_url=sqlite_url).load()
    assert [m.content for m in again] == stored
    assert LocalStore().read(CHAT_HISTORY_KEY) is None


def test_remote_clear(sqlite_url: str):
    history = ChatHistory(ALICE, database_url=sqlite_url, clock=_ticking_clock())
    history.load()
    history.add("question", "user")
    history.clear()
    assert chat_contents(database_url=sqlite_url, user_id="alice") == [WELCOME_MESSAGE]


def test_remote_failures_are_reported():
    history = ChatHistory(ALICE)
    with pytest.raises(ChatHistoryError, match="Failed to load chat history"):
        history.load()
    with pytest.raises(ChatHistoryError, match="Failed to send message"):
        history.add("hi", "user")
    with pytest.raises(ChatHistoryError, match="Failed to clear chat history"):
        history.clear()
