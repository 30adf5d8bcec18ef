"""Exhaustive minimax with alpha-beta pruning and difficulty-driven mistakes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional
import logging
import random

from .board import Board, Mark, other_mark

logger = logging.getLogger(__name__)

WIN_SCORE = 100
LOSS_SCORE = -100
DRAW_SCORE = 0
# Search window; wider than any reachable score.
ALPHA_INIT, BETA_INIT = -1000, 1000


class Difficulty(str, Enum):
    EASY = "easy"
    NORMAL = "normal"
    UNBEATABLE = "unbeatable"


PERTURB_PROBABILITY: Dict[Difficulty, float] = {
    Difficulty.EASY: 0.30,
    Difficulty.NORMAL: 0.10,
    Difficulty.UNBEATABLE: 0.0,
}


def perturb_probability(difficulty: Difficulty) -> float:
    """Chance of taking a strictly worse candidate over the current best."""
    return PERTURB_PROBABILITY[Difficulty(difficulty)]


class NoLegalMoveError(RuntimeError):
    def __init__(self) -> None:
        super().__init__("No valid moves available")


@dataclass
class SearchEngine:
    """Move picker for the computer-controlled mark.

    Every call works on a private clone of the board, so one engine can serve
    any number of games. Pass a seeded ``random.Random`` for reproducible
    easy/normal play; unbeatable never touches the generator.
    """

    rng: random.Random = field(default_factory=random.Random, repr=False)

    # ---- public API ----

    def select_move(
        self,
        board: Board,
        ai_mark: Mark,
        human_mark: Mark,
        difficulty: Difficulty = Difficulty.UNBEATABLE,
    ) -> int:
        if ai_mark == human_mark:
            raise ValueError("AI and human marks must differ")
        other_mark(ai_mark)
        other_mark(human_mark)

        moves = board.empty_indices()
        if not moves:
            raise NoLegalMoveError()

        difficulty = Difficulty(difficulty)
        probability = perturb_probability(difficulty)
        scratch = board.clone()

        best_index: Optional[int] = None
        best_score = -float("inf")
        perturbed = False

        for index in moves:
            scratch.place(index, ai_mark)
            if scratch.check_win(ai_mark) is not None:
                # Completing a line now is never traded away, whatever the tier.
                scratch.undo(index)
                logger.debug(
                    "select_move: immediate win at %d (%s, %s)",
                    index, ai_mark, difficulty.value,
                )
                return index
            score = self.minimax(
                scratch, human_mark, ALPHA_INIT, BETA_INIT, ai_mark, human_mark
            )
            scratch.undo(index)

            if score > best_score:
                best_index, best_score = index, score
            elif score < best_score and probability and self.rng.random() < probability:
                best_index = index
                perturbed = True

        if best_index is None:
            best_index = self.rng.choice(moves)
            logger.debug("select_move: no candidate adopted, random %d", best_index)
            return best_index

        logger.debug(
            "select_move: %s plays %d (score %s, %s%s)",
            ai_mark,
            best_index,
            best_score,
            difficulty.value,
            ", perturbed" if perturbed else "",
        )
        return best_index

    # ---- core search ----

    def minimax(
        self,
        board: Board,
        mark_to_move: Mark,
        alpha: int,
        beta: int,
        ai_mark: Mark,
        human_mark: Mark,
    ) -> int:
        # Terminal
        if board.check_win(ai_mark) is not None:
            return WIN_SCORE
        if board.check_win(human_mark) is not None:
            return LOSS_SCORE
        if board.is_full():
            return DRAW_SCORE

        if mark_to_move == ai_mark:
            for index in board.empty_indices():
                board.place(index, ai_mark)
                score = self.minimax(board, human_mark, alpha, beta, ai_mark, human_mark)
                board.undo(index)
                alpha = max(alpha, score)
                if alpha > beta:
                    break
            return alpha

        for index in board.empty_indices():
            board.place(index, human_mark)
            score = self.minimax(board, ai_mark, alpha, beta, ai_mark, human_mark)
            board.undo(index)
            beta = min(beta, score)
            if alpha > beta:
                break
        return beta
