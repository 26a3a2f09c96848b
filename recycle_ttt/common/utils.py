from typing import Optional, Tuple

from ..game_logic import Cell, GameState, expiring_cell


def log(tag: str, *a):
    print(f"[{tag}]", *a, flush=True)


def parse_hostport(s: str, default_port: Optional[int] = None) -> Tuple[str, int]:
    if ":" not in s:
        if default_port is None:
            raise ValueError("host:port expected")
        return s, default_port
    h, p = s.rsplit(":", 1)
    return h, int(p)


def pretty_board(state: GameState) -> str:
    # empty cells show their index; the mark about to be recycled is lowercase
    fading = expiring_cell(state)
    s = []
    for r in range(3):
        cells = []
        for i in range(r*3, (r+1)*3):
            c = state.board[i]
            if c is Cell.EMPTY:
                cells.append(str(i))
            elif i == fading:
                cells.append(c.value.lower())
            else:
                cells.append(c.value)
        s.append(" " + " | ".join(cells) + " ")
        if r < 2:
            s.append("---+---+---")
    return "\n".join(s)


def status_text(state: GameState) -> str:
    if state.finished:
        if state.winner:
            return f"{state.winner.value} wins"
        return "Draw"
    return f"{state.current_player.value} to move"
