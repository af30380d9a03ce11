import re
from typing import Callable

import pytest

from tictactoe_arena.completions import Completer, Completion
from tictactoe_arena.config import TournamentSettings
from tictactoe_arena.protocol import Contestant
from tictactoe_arena.records import ChatMessage
from tictactoe_arena.storage import TournamentLog

Reply = str | Exception | Callable[[list[ChatMessage]], str]


def first_empty_cell(messages: list[ChatMessage]) -> str:
    """Play the first cell listed as available in the prompt."""
    prompt = messages[-1].content
    cells = prompt.split("Available empty cells:")[-1].split("\n")[0]
    row, col = re.findall(r"\((\d+),(\d+)\)", cells)[0]
    return f"Thinking about it...\n{row},{col}"


class ScriptedCompleter(Completer):
    """
    Returns the scripted replies in order, then falls back to `default`.
    Exceptions in the script are raised instead of returned.
    """

    def __init__(
        self, replies: list[Reply] | None = None, default: Reply = first_empty_cell
    ) -> None:
        self.replies = list(replies or [])
        self.default = default
        self.calls: list[list[ChatMessage]] = []

    async def complete(
        self, messages: list[ChatMessage], *, max_tokens: int, timeout_ms: int
    ) -> Completion:
        self.calls.append(messages)
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(messages)
        return Completion(text=reply, usage={"input": 10, "output": 2})


class Recorder:
    def __init__(self) -> None:
        self.calls: list = []

    async def __call__(self, value) -> None:
        self.calls.append(value)


def make_contestant(model_id: str, completer: Completer | None = None) -> Contestant:
    if completer is None:
        completer = ScriptedCompleter()
    return Contestant(
        model_id=model_id,
        name=model_id,
        mode="verbose",
        system_prompt="Play tic-tac-toe",
        completer=completer,
    )


@pytest.fixture
def contestant():
    return make_contestant


@pytest.fixture
def scripted():
    return ScriptedCompleter


@pytest.fixture
def log(tmp_path) -> TournamentLog:
    return TournamentLog(
        str(tmp_path / "matches"),
        str(tmp_path / "outcomes.jsonl"),
        str(tmp_path / "statistics.json"),
    )


@pytest.fixture
def tournament_settings() -> TournamentSettings:
    return TournamentSettings(
        rounds=1,
        timeout_ms=1000,
        max_tokens=100,
        max_retries=3,
        backoff_base_ms=1000,
        backoff_multiplier=2,
    )


@pytest.fixture
def recorder():
    return Recorder
