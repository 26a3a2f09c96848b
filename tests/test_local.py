import unittest

from recycle_ttt.game_logic import Cell, IllegalMove, Player, apply_placement, new_game
from recycle_ttt.local import MODE_AI, MODE_PVP, REASON_AI_TURN, LocalMatch


class LocalMatchTests(unittest.TestCase):
    def test_pvp_alternates_and_scores(self):
        match = LocalMatch(MODE_PVP)
        for pos in (0, 3, 1, 4, 2):
            match.play(pos)
        self.assertEqual(match.state.winner, Player.X)
        self.assertEqual(match.score, {Player.X: 1, Player.O: 0})
        match.reset()
        self.assertEqual(match.state, new_game())
        self.assertEqual(match.score[Player.X], 1)

    def test_ai_replies_automatically(self):
        match = LocalMatch(MODE_AI)
        match.play(0)
        self.assertEqual(match.state.current_player, Player.X)
        self.assertEqual(match.state.last_player, Player.O)
        self.assertEqual(sum(1 for c in match.state.board if c is Cell.O), 1)

    def test_ai_win_is_scored(self):
        match = LocalMatch(MODE_AI)
        for pos in (0, 4, 2, 7):
            match.state = apply_placement(match.state, pos)
        match.play(6)
        self.assertEqual(match.state.last_move, 1)
        self.assertEqual(match.state.winner, Player.O)
        self.assertEqual(match.score, {Player.X: 0, Player.O: 1})
        self.assertFalse(match.ai_to_move())

    def test_human_cannot_move_for_ai(self):
        match = LocalMatch(MODE_AI)
        match.play(4, auto_reply=False)
        self.assertTrue(match.ai_to_move())
        with self.assertRaises(IllegalMove) as cm:
            match.play(0)
        self.assertEqual(cm.exception.reason, REASON_AI_TURN)
        pos = match.ai_move()
        self.assertIsNotNone(pos)
        self.assertFalse(match.ai_to_move())
        self.assertIsNone(match.ai_move())

    def test_scores_are_per_mode(self):
        match = LocalMatch(MODE_PVP)
        for pos in (0, 3, 1, 4, 2):
            match.play(pos)
        match.set_mode(MODE_AI)
        self.assertEqual(match.state, new_game())
        self.assertEqual(match.score, {Player.X: 0, Player.O: 0})
        match.set_mode(MODE_PVP)
        self.assertEqual(match.score[Player.X], 1)
        match.reset_scores()
        self.assertEqual(match.score, {Player.X: 0, Player.O: 0})

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            LocalMatch("online")


if __name__ == "__main__":
    unittest.main()
