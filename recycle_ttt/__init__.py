"""Tic-tac-toe where each player keeps at most three marks on the board."""
__version__ = "0.1.0"
