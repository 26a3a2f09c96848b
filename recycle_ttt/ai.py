from typing import Optional

from .game_logic import (CENTER, WIN_LINES, Cell, GameState, Player,
                         apply_placement, find_win, legal_moves)

DEFAULT_DEPTH = 8
WIN_SCORE = 1000
CENTER_BONUS = 2
INF = float("inf")


def evaluate_terminal(state: GameState, me: Player) -> Optional[int]:
    won = find_win(state.board)
    if not won:
        return None
    return WIN_SCORE if won[0] is me else -WIN_SCORE


def evaluate_heuristic(state: GameState, me: Player) -> int:
    """Open-line count squared for each side, plus a small center bonus."""
    mine, theirs = Cell.of(me), Cell.of(me.other)
    score = 0
    for line in WIN_LINES:
        cells = [state.board[i] for i in line]
        a, b = cells.count(mine), cells.count(theirs)
        if a and not b:
            score += a * a
        elif b and not a:
            score -= b * b
    if state.board[CENTER] is mine:
        score += CENTER_BONUS
    elif state.board[CENTER] is theirs:
        score -= CENTER_BONUS
    return score


def minimax(state: GameState, depth: int, alpha: float, beta: float,
            maximizing: bool, me: Player) -> float:
    terminal = evaluate_terminal(state, me)
    if terminal is not None:
        return terminal
    if depth == 0:
        return evaluate_heuristic(state, me)
    moves = legal_moves(state)
    if not moves:
        return 0

    if maximizing:
        value = -INF
        for pos in moves:
            value = max(value, minimax(apply_placement(state, pos), depth - 1, alpha, beta, False, me))
            alpha = max(alpha, value)
            if alpha >= beta:
                break
        return value

    value = INF
    for pos in moves:
        value = min(value, minimax(apply_placement(state, pos), depth - 1, alpha, beta, True, me))
        beta = min(beta, value)
        if alpha >= beta:
            break
    return value


def select_move(state: GameState, player: Player, depth: int = DEFAULT_DEPTH) -> Optional[int]:
    """
    Best placement for `player` with the recycle rule applied at every ply.
    Ties keep the lowest index. Returns None when the board has no empty cell.
    """
    moves = legal_moves(state)
    if not moves:
        return None
    best_score, best_move = -INF, moves[0]
    for pos in moves:
        # a child that cannot beat best_score fails low and is never picked
        score = minimax(apply_placement(state, pos), depth - 1, best_score, INF, False, player)
        if score > best_score:
            best_score, best_move = score, pos
    return best_move
