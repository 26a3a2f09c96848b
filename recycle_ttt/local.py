from typing import Dict, Optional

from .ai import select_move
from .game_logic import GameState, IllegalMove, Player, apply_placement, new_game

MODE_PVP = "pvp"
MODE_AI = "ai"
MODES = (MODE_PVP, MODE_AI)
MODE_LABELS = {MODE_PVP: "1 vs 1", MODE_AI: "vs AI"}

REASON_AI_TURN = "ai_turn"


class LocalMatch:
    """
    Offline game context:
    - pvp: both players share the board.
    - ai:  human plays X, the search engine answers as O.
    Scores are kept per mode and survive resets.
    """
    def __init__(self, mode: str = MODE_PVP, human: Player = Player.X):
        if mode not in MODES:
            raise ValueError(f"unknown mode: {mode}")
        self.mode = mode
        self.human = human
        self.ai = human.other
        self.state: GameState = new_game()
        self.scores: Dict[str, Dict[Player, int]] = {m: {Player.X: 0, Player.O: 0} for m in MODES}

    @property
    def score(self) -> Dict[Player, int]:
        return self.scores[self.mode]

    def ai_to_move(self) -> bool:
        return self.mode == MODE_AI and not self.state.finished and self.state.current_player is self.ai

    def play(self, pos: int, auto_reply: bool = True) -> GameState:
        """Human placement. In ai mode the reply is played too unless auto_reply is off."""
        if self.ai_to_move():
            raise IllegalMove(REASON_AI_TURN, pos)
        self._apply(pos)
        if auto_reply and self.ai_to_move():
            self.ai_move()
        return self.state

    def ai_move(self) -> Optional[int]:
        if not self.ai_to_move():
            return None
        pos = select_move(self.state, self.ai)
        if pos is not None:
            self._apply(pos)
        return pos

    def _apply(self, pos: int) -> None:
        self.state = apply_placement(self.state, pos)
        if self.state.winner:
            self.score[self.state.winner] += 1

    def reset(self) -> GameState:
        self.state = new_game()
        return self.state

    def reset_scores(self) -> None:
        self.scores[self.mode] = {Player.X: 0, Player.O: 0}

    def set_mode(self, mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"unknown mode: {mode}")
        self.mode = mode
        self.reset()

    def toggle_mode(self) -> str:
        self.set_mode(MODE_AI if self.mode == MODE_PVP else MODE_PVP)
        return self.mode

    @property
    def label(self) -> str:
        return MODE_LABELS[self.mode]
