from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

WIN_LINES = [
    (0,1,2),(3,4,5),(6,7,8),
    (0,3,6),(1,4,7),(2,5,8),
    (0,4,8),(2,4,6)
]

MAX_MARKS = 3
CENTER = 4


class Player(str, Enum):
    X = "X"
    O = "O"

    @property
    def other(self) -> "Player":
        return Player.O if self is Player.X else Player.X


class Cell(str, Enum):
    EMPTY = " "
    X = "X"
    O = "O"

    @classmethod
    def of(cls, player: Player) -> "Cell":
        return cls(player.value)

    @property
    def owner(self) -> Optional[Player]:
        return None if self is Cell.EMPTY else Player(self.value)


class IllegalMove(ValueError):
    """Placement rejected by the rules; ``reason`` is one of the REASON_* codes."""
    def __init__(self, reason: str, pos=None):
        super().__init__(f"{reason} (pos={pos!r})")
        self.reason = reason
        self.pos = pos


REASON_FINISHED = "finished"
REASON_OUT_OF_RANGE = "out_of_range"
REASON_OCCUPIED = "occupied"


def _empty_history() -> Dict[Player, Tuple[int, ...]]:
    return {Player.X: (), Player.O: ()}


@dataclass(frozen=True)
class GameState:
    """
    Recycle-3 tic-tac-toe position.
    - Each player keeps at most 3 marks; move_history lists them oldest first.
    - States are never mutated; apply_placement returns a new one.
    """
    board: Tuple[Cell, ...] = (Cell.EMPTY,) * 9
    current_player: Player = Player.X
    finished: bool = False
    move_history: Dict[Player, Tuple[int, ...]] = field(default_factory=_empty_history, hash=False)
    winner: Optional[Player] = None
    win_line: Optional[Tuple[int, int, int]] = None
    last_move: Optional[int] = None
    last_player: Optional[Player] = None

    def history(self, player: Player) -> Tuple[int, ...]:
        return self.move_history[player]

    def to_dict(self) -> dict:
        return {
            "board": [c.owner.value if c.owner else None for c in self.board],
            "currentPlayer": self.current_player.value,
            "finished": self.finished,
            "moveHistory": {p.value: list(h) for p, h in self.move_history.items()},
            "winner": self.winner.value if self.winner else None,
            "winLine": list(self.win_line) if self.win_line else None,
            "lastMove": self.last_move,
            "lastPlayer": self.last_player.value if self.last_player else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "GameState":
        try:
            board = tuple(Cell.EMPTY if v is None else Cell(v) for v in d["board"])
            if len(board) != 9:
                raise ValueError("board must have 9 cells")
            hist = d.get("moveHistory") or {}
            win_line = d.get("winLine")
            winner = d.get("winner")
            last_player = d.get("lastPlayer")
            return cls(
                board=board,
                current_player=Player(d["currentPlayer"]),
                finished=bool(d.get("finished", False)),
                move_history={p: tuple(int(i) for i in hist.get(p.value, ())) for p in Player},
                winner=Player(winner) if winner else None,
                win_line=tuple(win_line) if win_line else None,
                last_move=d.get("lastMove"),
                last_player=Player(last_player) if last_player else None,
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"bad snapshot: {e}") from e


def new_game() -> GameState:
    return GameState()


def legal_moves(state: GameState) -> List[int]:
    return [i for i, c in enumerate(state.board) if c is Cell.EMPTY]


def find_win(board) -> Optional[Tuple[Player, Tuple[int, int, int]]]:
    # rows, then columns, then diagonals: first completed line wins ties
    for a,b,c in WIN_LINES:
        if board[a] is not Cell.EMPTY and board[a] == board[b] == board[c]:
            return board[a].owner, (a, b, c)
    return None


def is_draw(board) -> bool:
    return all(c is not Cell.EMPTY for c in board)


def expiring_cell(state: GameState) -> Optional[int]:
    """Cell the player to move will lose on their next placement, if any."""
    if state.finished:
        return None
    h = state.move_history[state.current_player]
    return h[0] if len(h) >= MAX_MARKS else None


def apply_placement(state: GameState, pos) -> GameState:
    """
    Place a mark for state.current_player at pos and return the new state.
    Raises IllegalMove (finished / out_of_range / occupied) and leaves state untouched.
    """
    if state.finished:
        raise IllegalMove(REASON_FINISHED, pos)
    if isinstance(pos, bool) or not isinstance(pos, int) or not 0 <= pos < 9:
        raise IllegalMove(REASON_OUT_OF_RANGE, pos)
    if state.board[pos] is not Cell.EMPTY:
        raise IllegalMove(REASON_OCCUPIED, pos)

    player = state.current_player
    board = list(state.board)
    history = list(state.move_history[player])
    # recycle oldest before placing
    if len(history) >= MAX_MARKS:
        oldest = history.pop(0)
        board[oldest] = Cell.EMPTY
    board[pos] = Cell.of(player)
    history.append(pos)

    move_history = dict(state.move_history)
    move_history[player] = tuple(history)
    board = tuple(board)

    won = find_win(board)
    if won:
        winner, line = won
        return GameState(board, player, True, move_history, winner, line, pos, player)
    if is_draw(board):
        # 6-mark cap means this never triggers from legal play
        return GameState(board, player, True, move_history, None, None, pos, player)
    return GameState(board, player.other, False, move_history, None, None, pos, player)
