import time
from typing import Literal

from tictactoe_arena.records import GameMove, Player

Terminal = Literal["X", "O", "draw"]

SIZE = 3


class InvalidCell(ValueError):
    def __init__(self, row: int, col: int, occupied_by: Player | None = None) -> None:
        self.row = row
        self.col = col
        self.occupied_by = occupied_by
        if occupied_by is None:
            reason = "is outside the board"
        else:
            reason = f"is already taken by {occupied_by}"
        super().__init__(f"Cell ({row}, {col}) {reason}")

    @property
    def occupied(self) -> bool:
        return self.occupied_by is not None


class TicTacToe:
    """
    A single 3x3 game. X always moves first; the player to move is derived from
    the number of moves played so far.
    """

    def __init__(self) -> None:
        self.board: list[list[Player | None]] = [
            [None for _ in range(SIZE)] for _ in range(SIZE)
        ]
        self._moves: list[GameMove] = []

    @property
    def moves(self) -> list[GameMove]:
        return list(self._moves)

    def current_player(self) -> Player:
        return "X" if len(self._moves) % 2 == 0 else "O"

    def in_range(self, row: int, col: int) -> bool:
        return 0 <= row < SIZE and 0 <= col < SIZE

    def is_valid_move(self, row: int, col: int) -> bool:
        return self.in_range(row, col) and self.board[row][col] is None

    def apply_move(self, row: int, col: int) -> GameMove:
        if not self.in_range(row, col):
            raise InvalidCell(row, col)
        occupant = self.board[row][col]
        if occupant is not None:
            raise InvalidCell(row, col, occupied_by=occupant)

        player = self.current_player()
        self.board[row][col] = player
        move = GameMove(
            player=player, row=row, col=col, timestamp=int(time.time() * 1000)
        )
        self._moves.append(move)
        return move

    def lines(self) -> list[list[Player | None]]:
        rows = [list(row) for row in self.board]
        cols = [[self.board[row][col] for row in range(SIZE)] for col in range(SIZE)]
        diagonals = [
            [self.board[i][i] for i in range(SIZE)],
            [self.board[i][SIZE - 1 - i] for i in range(SIZE)],
        ]
        return rows + cols + diagonals

    def check_terminal(self) -> Terminal | None:
        for line in self.lines():
            first = line[0]
            if first is not None and all(cell == first for cell in line):
                return first

        if self.is_full():
            return "draw"

        return None

    def is_over(self) -> bool:
        return self.check_terminal() is not None

    def empty_cells(self) -> list[tuple[int, int]]:
        return [
            (row, col)
            for row in range(SIZE)
            for col in range(SIZE)
            if self.board[row][col] is None
        ]

    def is_full(self) -> bool:
        return len(self.empty_cells()) == 0

    def board_string(self) -> str:
        return "\n".join(
            " ".join(cell or "-" for cell in row) for row in self.board
        )
