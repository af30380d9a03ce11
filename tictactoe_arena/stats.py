import logging
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from tictactoe_arena.records import InvalidMoveType, MatchOutcome

LOGGER = logging.getLogger(__name__)


class InvalidMoveCounts(BaseModel):
    blank: int = 0
    invalid_syntax: int = 0
    outside_board: int = 0
    occupied_cell: int = 0
    negative_coordinates: int = 0
    api_error: int = 0
    total: int = 0

    def add(self, type: InvalidMoveType) -> None:
        setattr(self, type, getattr(self, type) + 1)
        self.total += 1


class HeadToHead(BaseModel):
    wins: int = 0
    losses: int = 0
    draws: int = 0
    invalid: int = 0


class ModelStats(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    total_matches: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    invalid_games: int = 0
    win_rate: float = 0.0
    invalid_moves: InvalidMoveCounts = Field(default_factory=InvalidMoveCounts)
    opponents: dict[str, HeadToHead] = Field(default_factory=dict)

    @property
    def valid_games(self) -> int:
        return self.total_matches - self.invalid_games

    def against(self, opponent: str) -> HeadToHead:
        return self.opponents.setdefault(opponent, HeadToHead())


class Ranking(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    rank: int
    win_rate: float
    total_wins: int


class TournamentStats(BaseModel):
    total_matches: int
    completed_matches: int
    invalid_matches: int
    overall_invalid_moves: InvalidMoveCounts
    models: list[ModelStats]
    rankings: list[Ranking]
    timestamp: int

    def get(self, model_id: str) -> ModelStats:
        for model in self.models:
            if model.model_id == model_id:
                return model
        raise KeyError(model_id)


def outcome_model_ids(outcomes: Iterable[MatchOutcome]) -> list[str]:
    seen: dict[str, None] = {}
    for outcome in outcomes:
        seen.setdefault(outcome.x_model, None)
        seen.setdefault(outcome.o_model, None)
    return list(seen)


def compute_statistics(
    outcomes: list[MatchOutcome],
    model_ids: list[str] | None = None,
    expected_total_matches: int | None = None,
) -> TournamentStats:
    """
    Fold the outcome log into per-model and head-to-head records.

    This is a pure function of its inputs (including the timestamp, which is
    taken from the latest outcome) so it can be rerun over the log at any time.
    Ranks are assigned sequentially in sort order; exactly tied models still
    get distinct ranks.
    """
    if model_ids is None:
        model_ids = outcome_model_ids(outcomes)

    stats = {model_id: ModelStats(model_id=model_id) for model_id in model_ids}
    overall_invalid = InvalidMoveCounts()

    counted: list[MatchOutcome] = []
    for outcome in outcomes:
        x_stats = stats.get(outcome.x_model)
        o_stats = stats.get(outcome.o_model)
        if x_stats is None or o_stats is None:
            LOGGER.debug("Skipping outcome %s for unknown model", outcome.match_id)
            continue
        counted.append(outcome)

        x_stats.total_matches += 1
        o_stats.total_matches += 1
        x_record = x_stats.against(outcome.o_model)
        o_record = o_stats.against(outcome.x_model)

        if outcome.winner == "invalid":
            x_stats.invalid_games += 1
            o_stats.invalid_games += 1
            x_record.invalid += 1
            o_record.invalid += 1

            if outcome.invalid_type is None:
                LOGGER.debug("Invalid outcome %s has no type", outcome.match_id)
                continue
            overall_invalid.add(outcome.invalid_type)
            offender = stats.get(outcome.invalid_model or "")
            if offender is not None:
                offender.invalid_moves.add(outcome.invalid_type)
        elif outcome.winner == "draw":
            x_stats.draws += 1
            o_stats.draws += 1
            x_record.draws += 1
            o_record.draws += 1
        elif outcome.winner == "X":
            x_stats.wins += 1
            o_stats.losses += 1
            x_record.wins += 1
            o_record.losses += 1
        else:
            x_stats.losses += 1
            o_stats.wins += 1
            x_record.losses += 1
            o_record.wins += 1

    for model_stats in stats.values():
        valid = model_stats.valid_games
        model_stats.win_rate = model_stats.wins / valid if valid > 0 else 0.0

    ordered = sorted(stats.values(), key=lambda s: (s.win_rate, s.wins), reverse=True)
    rankings = [
        Ranking(
            model_id=model_stats.model_id,
            rank=idx + 1,
            win_rate=model_stats.win_rate,
            total_wins=model_stats.wins,
        )
        for idx, model_stats in enumerate(ordered)
    ]

    invalid_matches = sum(1 for outcome in counted if outcome.winner == "invalid")

    return TournamentStats(
        total_matches=expected_total_matches or len(counted),
        completed_matches=len(counted) - invalid_matches,
        invalid_matches=invalid_matches,
        overall_invalid_moves=overall_invalid,
        models=list(stats.values()),
        rankings=rankings,
        timestamp=max((outcome.timestamp for outcome in counted), default=0),
    )
