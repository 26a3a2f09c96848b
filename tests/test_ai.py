import unittest

from recycle_ttt.ai import (evaluate_heuristic, evaluate_terminal, minimax,
                            select_move)
from recycle_ttt.game_logic import (Cell, GameState, Player, apply_placement,
                                    new_game)


def play(*moves):
    state = new_game()
    for pos in moves:
        state = apply_placement(state, pos)
    return state


class HeuristicTests(unittest.TestCase):
    def test_center_mark(self):
        state = play(4)
        # four open lines through the center plus the center bonus
        self.assertEqual(evaluate_heuristic(state, Player.X), 6)
        self.assertEqual(evaluate_heuristic(state, Player.O), -6)

    def test_mixed_lines_score_zero(self):
        state = play(0, 1)
        # X: (3,6) col and (4,8) diag open -> +2; O: (4,7) col open -> -1; row 0 mixed
        self.assertEqual(evaluate_heuristic(state, Player.X), 1)

    def test_two_in_a_line_counts_squared(self):
        state = play(0, 4, 1)
        # X: row 0 -> 4, column 0 -> 1; O: (3,4,5) and (2,4,6) -> -2, center -> -2
        self.assertEqual(evaluate_heuristic(state, Player.X), 4 + 1 - 2 - 2)

    def test_terminal(self):
        won = play(0, 3, 1, 4, 2)
        self.assertEqual(evaluate_terminal(won, Player.X), 1000)
        self.assertEqual(evaluate_terminal(won, Player.O), -1000)
        self.assertIsNone(evaluate_terminal(play(0), Player.X))


class SelectMoveTests(unittest.TestCase):
    def test_blocks_open_row(self):
        # X X . / . O . / . . .  with O to move
        state = play(0, 4, 1)
        self.assertEqual(state.current_player, Player.O)
        self.assertEqual(select_move(state, Player.O), 2)

    def test_takes_winning_cell(self):
        # X: 0 2 6, O: 4 7, O completes column 1 at 1
        state = play(0, 4, 2, 7, 6)
        self.assertEqual(select_move(state, Player.O), 1)

    def test_depth_one_prefers_center(self):
        self.assertEqual(select_move(new_game(), Player.X, depth=1), 4)

    def test_ties_keep_lowest_index(self):
        # at depth 1 all four corners score -3 against X in the center
        self.assertEqual(select_move(play(4), Player.O, depth=1), 0)

    def test_deterministic_and_pure(self):
        state = play(0, 4, 8)
        before = state.to_dict()
        first = select_move(state, Player.O, depth=4)
        self.assertEqual(select_move(state, Player.O, depth=4), first)
        self.assertEqual(state.to_dict(), before)

    def test_full_board_has_no_move(self):
        board = tuple(Cell(c) for c in "XOXXOOOXX")
        self.assertIsNone(select_move(GameState(board=board), Player.O))

    def test_minimax_horizon_uses_heuristic(self):
        state = play(4)
        self.assertEqual(minimax(state, 0, float("-inf"), float("inf"), True, Player.X), 6)


if __name__ == "__main__":
    unittest.main()
