"""Tic-tac-toe package exposing the board rules, the search engine, and the web application."""

from .ai import Difficulty, NoLegalMoveError, SearchEngine
from .board import Board, OccupiedCellError, OutOfRangeError, Outcome
from .ui import GameSession, app

__all__ = [
    "Board",
    "Difficulty",
    "GameSession",
    "NoLegalMoveError",
    "OccupiedCellError",
    "OutOfRangeError",
    "Outcome",
    "SearchEngine",
    "app",
]
