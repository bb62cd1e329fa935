# ruff: noqa: I001
"""Capped chat history for the financial assistant.

History lives in the remote ``ft_chat_messages`` table for a signed-in user
and under the local ``chat_history`` key otherwise. At most
:data:`MAX_CHAT_HISTORY` messages are kept; the oldest are dropped first.
An empty history is seeded with :data:`WELCOME_MESSAGE`.

Remote failures are raised as :class:`ChatHistoryError`; unlike the
transaction ledger there is no local fallback.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from db.client import session_scope
from .local_store import CHAT_HISTORY_KEY, LocalStore
from .logging_setup import get_logger
from .models import ChatMessage, Sender, UserContext
from .persistence import (
    delete_chat_messages,
    fetch_chat_messages,
    insert_chat_message,
    prune_chat_messages,
)

MAX_CHAT_HISTORY: int = 50
WELCOME_MESSAGE: str = (
    "Hello! I'm your AI financial assistant. How can I help you with your finances today?"
)

_logger = get_logger("finance_tracker.chat_history")


class ChatHistoryError(RuntimeError):
    """The remote chat history could not be read or written."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


def parse_chat_messages(raw: object) -> list[ChatMessage]:
    """Validate a stored list of messages, skipping malformed entries."""

    if not isinstance(raw, list):
        if raw is not None:
            _logger.error("chat_history:local_invalid type=%s", type(raw).__name__)
        return []
    out: list[ChatMessage] = []
    for i, item in enumerate(raw):
        try:
            out.append(ChatMessage.model_validate(item))
        except ValidationError as e:
            _logger.warning(
                "chat_history:skipped position=%d errors=%d", i, e.error_count()
            )
    return out


class ChatHistory:
    def __init__(
        self,
        user: UserContext | None = None,
        *,
        database_url: str | None = None,
        store: LocalStore | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._user = user
        self._database_url = database_url
        self._store = store if store is not None else LocalStore()
        self._clock = clock
        self._messages: list[ChatMessage] = []

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def _save_local(self) -> None:
        self._store.write(
            CHAT_HISTORY_KEY,
            [m.model_dump(mode="json", exclude_none=True) for m in self._messages],
        )

    def load(self) -> tuple[ChatMessage, ...]:
        """Load the stored history, seeding the welcome message when empty."""

        if self._user is None:
            self._messages = parse_chat_messages(self._store.read(CHAT_HISTORY_KEY))[
                -MAX_CHAT_HISTORY:
            ]
        else:
            try:
                with session_scope(database_url=self._database_url) as session:
                    self._messages = fetch_chat_messages(
                        session, user=self._user, limit=MAX_CHAT_HISTORY
                    )
            except (SQLAlchemyError, RuntimeError) as e:
                _logger.error(
                    "chat_history:load_failed user=%s error=%s",
                    self._user.user_id,
                    e.__class__.__name__,
                )
                raise ChatHistoryError(
                    "Failed to load chat history. Please try again."
                ) from e

        if not self._messages:
            self.add(WELCOME_MESSAGE, "assistant")
        return self.messages

    def add(self, content: str, sender: Sender) -> ChatMessage:
        """Append a message and enforce the history cap."""

        ts = self._clock()
        if self._user is None:
            msg = ChatMessage(content=content, sender=sender, timestamp=ts)
            self._messages = [*self._messages, msg][-MAX_CHAT_HISTORY:]
            self._save_local()
            return msg

        try:
            with session_scope(database_url=self._database_url) as session:
                msg = insert_chat_message(
                    session, user=self._user, content=content, sender=sender, timestamp=ts
                )
                prune_chat_messages(session, user=self._user, keep=MAX_CHAT_HISTORY)
        except (SQLAlchemyError, RuntimeError) as e:
            _logger.error(
                "chat_history:add_failed user=%s error=%s",
                self._user.user_id,
                e.__class__.__name__,
            )
            raise ChatHistoryError("Failed to send message. Please try again.") from e

        self._messages = [*self._messages, msg][-MAX_CHAT_HISTORY:]
        return msg

    def clear(self) -> tuple[ChatMessage, ...]:
        """Delete all messages and start over with the welcome message."""

        if self._user is None:
            self._messages = []
            self._save_local()
        else:
            try:
                with session_scope(database_url=self._database_url) as session:
                    removed = delete_chat_messages(session, user=self._user)
            except (SQLAlchemyError, RuntimeError) as e:
                _logger.error(
                    "chat_history:clear_failed user=%s error=%s",
                    self._user.user_id,
                    e.__class__.__name__,
                )
                raise ChatHistoryError(
                    "Failed to clear chat history. Please try again."
                ) from e
            _logger.info("chat_history:cleared user=%s removed=%d", self._user.user_id, removed)
            self._messages = []

        self.add(WELCOME_MESSAGE, "assistant")
        return self.messages


__all__ = [
    "MAX_CHAT_HISTORY",
    "WELCOME_MESSAGE",
    "ChatHistory",
    "ChatHistoryError",
    "parse_chat_messages",
]
