from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Player = Literal["X", "O"]

Winner = Literal["X", "O", "draw", "invalid"]

InvalidMoveType = Literal[
    "blank",
    "invalid_syntax",
    "outside_board",
    "occupied_cell",
    "negative_coordinates",
    "api_error",
]

INVALID_MOVE_TYPES: tuple[InvalidMoveType, ...] = (
    "blank",
    "invalid_syntax",
    "outside_board",
    "occupied_cell",
    "negative_coordinates",
    "api_error",
)

# Model mistakes; retried immediately without touching the retry budget
TEXTUAL_INVALID_TYPES: frozenset[InvalidMoveType] = frozenset(
    t for t in INVALID_MOVE_TYPES if t != "api_error"
)


class Move(BaseModel):
    row: int
    col: int


class GameMove(BaseModel):
    player: Player
    row: int
    col: int
    timestamp: int


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class Conversation(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    player: Player
    model_id: str
    messages: list[ChatMessage]
    response: str | None = None
    error: str | None = None
    usage: dict[str, int] | None = None
    timestamp: int


class InvalidMoveRecord(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    player: Player
    model_id: str
    type: InvalidMoveType
    details: str | None = None


class MatchResult(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    match_id: str
    x_model: str
    o_model: str
    winner: Winner
    winner_model: str | None = None
    moves: list[GameMove] = Field(default_factory=list)
    conversations: list[Conversation] = Field(default_factory=list)
    invalid_moves: list[InvalidMoveRecord] = Field(default_factory=list)
    invalid_type: InvalidMoveType | None = None
    invalid_reason: str | None = None
    duration_ms: int
    timestamp: int

    @property
    def is_invalid(self) -> bool:
        return self.winner == "invalid"

    @classmethod
    def failed(
        cls,
        match_id: str,
        x_model: str,
        o_model: str,
        reason: str,
        timestamp: int,
        duration_ms: int = 0,
    ) -> "MatchResult":
        """
        Record for an attempt that never produced a result of its own, e.g.
        because an unexpected exception escaped the match loop.
        """
        return cls(
            match_id=match_id,
            x_model=x_model,
            o_model=o_model,
            winner="invalid",
            invalid_type="api_error",
            invalid_reason=reason,
            duration_ms=duration_ms,
            timestamp=timestamp,
        )


class MatchOutcome(BaseModel):
    match_id: str
    x_model: str
    o_model: str
    winner: Winner
    winner_model: str | None = None
    invalid_type: InvalidMoveType | None = None
    invalid_model: str | None = None
    invalid_reason: str | None = None
    match_file: str
    timestamp: int

    @classmethod
    def from_result(cls, result: MatchResult, match_file: str) -> "MatchOutcome":
        invalid_model: str | None = None
        if result.invalid_moves:
            invalid_model = result.invalid_moves[-1].model_id

        return cls(
            match_id=result.match_id,
            x_model=result.x_model,
            o_model=result.o_model,
            winner=result.winner,
            winner_model=result.winner_model,
            invalid_type=result.invalid_type,
            invalid_model=invalid_model,
            invalid_reason=result.invalid_reason,
            match_file=match_file,
            timestamp=result.timestamp,
        )

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
