import logging
import time

from tictactoe_arena.game import InvalidCell, TicTacToe
from tictactoe_arena.protocol import Contestant, InvalidMove, request_move
from tictactoe_arena.records import (
    Conversation,
    InvalidMoveRecord,
    InvalidMoveType,
    MatchResult,
)

LOGGER = logging.getLogger(__name__)


async def play_match(
    x: Contestant,
    o: Contestant,
    *,
    match_id: str,
    timeout_ms: int,
    max_tokens: int,
) -> MatchResult:
    """
    Play one game to completion. The first invalid output of either side
    ends the match as invalid; the transcript is kept either way.
    """
    game = TicTacToe()
    timestamp = int(time.time() * 1000)
    before = time.perf_counter()

    conversations: list[Conversation] = []
    invalid_moves: list[InvalidMoveRecord] = []
    invalid_type: InvalidMoveType | None = None
    invalid_reason: str | None = None

    LOGGER.info("Starting match %s: %s (X) vs %s (O)", match_id, x.name, o.name)

    while not game.is_over():
        player = game.current_player()
        contestant = x if player == "X" else o

        LOGGER.debug("%s (%s) is thinking...", player, contestant.name)

        turn = await request_move(
            contestant, player, game, timeout_ms=timeout_ms, max_tokens=max_tokens
        )
        conversations.append(turn.conversation)

        if isinstance(turn.result, InvalidMove):
            invalid_type = turn.result.type
            details = turn.result.detail
            if invalid_type == "api_error":
                invalid_reason = f"{player} encountered an error: {details}"
            else:
                invalid_reason = (
                    f"{player} failed to provide a valid move ({invalid_type})"
                )
            invalid_moves.append(
                InvalidMoveRecord(
                    player=player,
                    model_id=contestant.model_id,
                    type=invalid_type,
                    details=details,
                )
            )
            break

        move = turn.result
        try:
            game.apply_move(move.row, move.col)
        except InvalidCell as err:
            invalid_type = "occupied_cell" if err.occupied else "outside_board"
            invalid_reason = f"{player} made an invalid move: {move.row},{move.col}"
            invalid_moves.append(
                InvalidMoveRecord(
                    player=player,
                    model_id=contestant.model_id,
                    type=invalid_type,
                    details=str(err),
                )
            )
            break

        LOGGER.info("  %s (%s): %d,%d", player, contestant.name, move.row, move.col)

    duration_ms = int((time.perf_counter() - before) * 1000)

    if invalid_type is not None:
        LOGGER.warning("Match %s is invalid: %s", match_id, invalid_reason)
        return MatchResult(
            match_id=match_id,
            x_model=x.model_id,
            o_model=o.model_id,
            winner="invalid",
            moves=game.moves,
            conversations=conversations,
            invalid_moves=invalid_moves,
            invalid_type=invalid_type,
            invalid_reason=invalid_reason,
            duration_ms=duration_ms,
            timestamp=timestamp,
        )

    terminal = game.check_terminal()
    assert terminal is not None

    winner_model: str | None = None
    if terminal == "X":
        winner_model = x.model_id
    elif terminal == "O":
        winner_model = o.model_id

    LOGGER.info(
        "Match %s result: %s",
        match_id,
        "draw" if terminal == "draw" else f"{terminal} ({winner_model}) wins",
    )

    return MatchResult(
        match_id=match_id,
        x_model=x.model_id,
        o_model=o.model_id,
        winner=terminal,
        winner_model=winner_model,
        moves=game.moves,
        conversations=conversations,
        duration_ms=duration_ms,
        timestamp=timestamp,
    )
