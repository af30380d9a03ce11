"""
Turning a game position into a request for a move, and a model's free-form
reply back into a move.
"""

import asyncio
import dataclasses as dc
import logging
import re
import time

import openai

from tictactoe_arena.completions import Completer, CompletionError
from tictactoe_arena.config import PromptMode
from tictactoe_arena.game import SIZE, TicTacToe
from tictactoe_arena.records import (
    ChatMessage,
    Conversation,
    InvalidMoveType,
    Move,
    Player,
)
from tictactoe_arena.usage import UsageTracker

LOGGER = logging.getLogger(__name__)

# Tried against the last line of the reply, first match wins
MOVE_PATTERNS = [
    re.compile(r"row\s*(-?[0-9]+)[^0-9]+col\s*(-?[0-9]+)", re.I),
    re.compile(r"\((-?[0-9]+)\s*,\s*(-?[0-9]+)\)"),
    re.compile(r"(-?[0-9]+)\s*,\s*(-?[0-9]+)"),
    re.compile(r"(-?[0-9]+)\s+(-?[0-9]+)"),
]


@dc.dataclass(frozen=True)
class InvalidMove:
    type: InvalidMoveType
    detail: str


@dc.dataclass(frozen=True)
class Contestant:
    model_id: str
    name: str
    mode: PromptMode
    system_prompt: str
    completer: Completer
    tracker: UsageTracker = dc.field(default_factory=UsageTracker)


@dc.dataclass(frozen=True)
class Turn:
    conversation: Conversation
    result: Move | InvalidMove


def format_game_state(player: Player, game: TicTacToe) -> str:
    message = f"You are player {player}.\n\n"
    message += f"Current board state:\n{game.board_string()}\n\n"

    empty_cells = " ".join(f"({row},{col})" for row, col in game.empty_cells())
    message += f"Available empty cells: {empty_cells}\n\n"

    history = [f"{move.player}: {move.row},{move.col}" for move in game.moves]
    if history:
        message += "Move history:\n" + "\n".join(history) + "\n\n"

    message += (
        "REMINDER: Only play in one of the empty cells listed above. "
        "Verify your chosen cell shows '-' on the board."
    )
    return message


def build_messages(
    contestant: Contestant, player: Player, game: TicTacToe
) -> list[ChatMessage]:
    return [
        ChatMessage(role="system", content=contestant.system_prompt),
        ChatMessage(role="user", content=format_game_state(player, game)),
    ]


def last_line(text: str) -> str:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        return ""
    return lines[-1]


def parse_move(text: str | None) -> Move | InvalidMove:
    """
    Parse a model's reply into a move. Only the last non-blank line is
    considered so models may reason before answering.

    The order of the checks decides which classification is reported when
    several apply: "-5,9" is negative_coordinates, not outside_board.
    """
    if text is None or not text.strip():
        return InvalidMove("blank", "Empty response")

    line = last_line(text)

    for pattern in MOVE_PATTERNS:
        match = pattern.search(line)
        if not match:
            continue

        try:
            row, col = int(match.group(1)), int(match.group(2))
        except ValueError:
            return InvalidMove("invalid_syntax", line)

        if row < 0 or col < 0:
            return InvalidMove("negative_coordinates", f"{row},{col}")

        if row >= SIZE or col >= SIZE:
            return InvalidMove("outside_board", f"{row},{col}")

        return Move(row=row, col=col)

    return InvalidMove("invalid_syntax", line)


async def request_move(
    contestant: Contestant,
    player: Player,
    game: TicTacToe,
    *,
    timeout_ms: int,
    max_tokens: int,
) -> Turn:
    """
    Ask a contestant for its next move. Timeouts and API failures come back as
    an `api_error` invalid move; anything else raised by the completer
    propagates.
    """
    messages = build_messages(contestant, player, game)
    timestamp = int(time.time() * 1000)

    error: str | None = None
    try:
        completion = await asyncio.wait_for(
            contestant.completer.complete(
                messages, max_tokens=max_tokens, timeout_ms=timeout_ms
            ),
            timeout=timeout_ms / 1000,
        )
    except asyncio.TimeoutError:
        error = f"[{contestant.mode}] TimeoutError: no response (timeout after {timeout_ms}ms)"
    except (openai.OpenAIError, CompletionError) as err:
        error = f"[{contestant.mode}] {type(err).__name__}: {err}"
        if isinstance(err, openai.APITimeoutError):
            error += f" (timeout after {timeout_ms}ms)"

    if error is not None:
        LOGGER.error("API error from %s: %s", contestant.model_id, error)
        conversation = Conversation(
            player=player,
            model_id=contestant.model_id,
            messages=messages,
            error=error,
            timestamp=timestamp,
        )
        return Turn(conversation, InvalidMove("api_error", error))

    text = (completion.text or "").strip()
    LOGGER.debug("Raw response from %s: %s", contestant.model_id, text)

    conversation = Conversation(
        player=player,
        model_id=contestant.model_id,
        messages=messages,
        response=text,
        usage=completion.usage,
        timestamp=timestamp,
    )

    return Turn(conversation, parse_move(text))
