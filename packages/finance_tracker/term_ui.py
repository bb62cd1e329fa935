"""Tiny terminal UI helpers (prompt_toolkit-based).

Interactive prompts for the CLI, kept apart from the ledger and assistant
logic so they're easy to test in isolation with a pipe input.
"""

from __future__ import annotations

from collections.abc import Callable

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.validation import ValidationError, Validator

from .assistant import AssistantSession
from .models import Category, ChatMessage, subcategories_for

EXIT_COMMANDS: frozenset[str] = frozenset({"exit", "quit", "/exit", "/quit"})
CLEAR_COMMAND = "/clear"


def _session_like(session: PromptSession | None, kb: KeyBindings) -> PromptSession:
    if session is None:
        return PromptSession(key_bindings=kb)
    return PromptSession(
        input=getattr(session, "input", None),
        output=getattr(session, "output", None),
        key_bindings=kb,
    )


def select_subcategory(
    category: Category | str,
    *,
    default: str | None = None,
    session: PromptSession | None = None,
    message: str | None = None,
) -> str | None:
    """Prompt for a subcategory from the allow-list of ``category``.

    Matching is case-insensitive and the result is normalized to the
    canonical spelling. Esc cancels and returns ``None``.
    """

    options = subcategories_for(category)
    canonical = {w.lower(): w for w in options}

    kb = KeyBindings()

    @kb.add("escape")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    class _SubcategoryValidator(Validator):
        def validate(self, document) -> None:
            if document.text.strip().lower() not in canonical:
                raise ValidationError(
                    message=f"Choose one of: {', '.join(options)}"
                )

    completer = WordCompleter(list(options), ignore_case=True, match_middle=True, sentence=True)
    sess = _session_like(session, kb)

    value = sess.prompt(
        message or f"{Category(category).value} subcategory: ",
        default=default if default in options else "",
        completer=completer,
        validator=_SubcategoryValidator(),
        validate_while_typing=False,
    )
    if value is None:
        return None
    return canonical[value.strip().lower()]


def prompt_chat_message(
    *,
    session: PromptSession | None = None,
    message: str = "You: ",
) -> str | None:
    """Read one chat line. Esc, Ctrl-C or Ctrl-D return ``None``."""

    kb = KeyBindings()

    @kb.add("escape")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    sess = _session_like(session, kb)
    try:
        return sess.prompt(message)
    except (EOFError, KeyboardInterrupt):
        return None


def format_message(msg: ChatMessage) -> str:
    who = "You" if msg.sender == "user" else "Assistant"
    return f"{who}: {msg.content}"


def run_chat(
    assistant: AssistantSession,
    *,
    session: PromptSession | None = None,
    write: Callable[[str], None] = print,
) -> int:
    """Interactive chat loop; returns the number of questions answered.

    ``/clear`` wipes the history and ``exit``/``quit`` (or Ctrl-D) ends the
    loop.
    """

    for msg in assistant.start():
        write(format_message(msg))

    answered = 0
    while True:
        line = prompt_chat_message(session=session)
        if line is None or line.strip().lower() in EXIT_COMMANDS:
            return answered
        if line.strip().lower() == CLEAR_COMMAND:
            for msg in assistant.clear():
                write(format_message(msg))
            continue
        reply = assistant.send(line)
        if reply is not None:
            write(format_message(reply))
            answered += 1


__all__ = [
    "CLEAR_COMMAND",
    "EXIT_COMMANDS",
    "format_message",
    "prompt_chat_message",
    "run_chat",
    "select_subcategory",
]
