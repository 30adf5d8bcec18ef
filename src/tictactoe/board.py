"""Core rules for a 3x3 tic-tac-toe board."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

Mark = str  # "X" or "O"
Line = Tuple[int, int, int]

EMPTY = " "
MARKS: Tuple[Mark, Mark] = ("X", "O")
FIRST_MARK: Mark = "X"

WINNING_LINES: Tuple[Line, ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

IN_PROGRESS, WIN, DRAW = "in_progress", "win", "draw"


def other_mark(mark: Mark) -> Mark:
    if mark not in MARKS:
        raise ValueError(f"Unknown mark {mark!r}")
    return "O" if mark == "X" else "X"


# ---------- Errors ----------


class BoardError(ValueError):
    """Base class for illegal board mutations."""


class OutOfRangeError(BoardError):
    def __init__(self, index: object) -> None:
        super().__init__(f"Cell index {index!r} is outside 0..8")
        self.index = index


class OccupiedCellError(BoardError):
    def __init__(self, index: int, mark: Mark) -> None:
        super().__init__(f"Cell {index} is already occupied by {mark}")
        self.index = index
        self.mark = mark


# ---------- Outcome ----------


@dataclass(frozen=True)
class Outcome:
    status: str = IN_PROGRESS
    winner: Optional[Mark] = None
    line: Optional[Line] = None

    @property
    def finished(self) -> bool:
        return self.status != IN_PROGRESS


# ---------- Board ----------


@dataclass
class Board:
    # 'X', 'O', or ' ' (space) for empty, row-major
    cells: List[str] = field(default_factory=lambda: [EMPTY] * 9)
    turns_played: int = 0
    active_mark: Mark = FIRST_MARK

    @classmethod
    def from_string(cls, layout: str) -> "Board":
        """
        Build a board from a 9-character layout such as ``"XO.X.O..."``.

        '.', '-', '_' and spaces mark empty cells; slashes and newlines are
        ignored so rows may be written as ``"XOX/.O./..X"``. The active mark is
        inferred from the mark counts (X moves first).
        """
        chars = [ch for ch in layout if ch not in "/\n"]
        if len(chars) != 9:
            raise ValueError(f"Expected 9 cells, got {len(chars)}")
        cells: List[str] = []
        for ch in chars:
            up = ch.upper()
            if up in MARKS:
                cells.append(up)
            elif ch in ".-_ ":
                cells.append(EMPTY)
            else:
                raise ValueError(f"Unexpected cell character {ch!r}")
        xs, os_ = cells.count("X"), cells.count("O")
        if xs - os_ not in (0, 1):
            raise ValueError("Mark counts are not reachable with X moving first")
        return cls(
            cells=cells,
            turns_played=xs + os_,
            active_mark="X" if xs == os_ else "O",
        )

    # ---- mutation ----

    def place(self, index: int, mark: Optional[Mark] = None) -> None:
        """Put ``mark`` (default: the active mark) on ``index``."""
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < 9:
            raise OutOfRangeError(index)
        current = self.cells[index]
        if current != EMPTY:
            raise OccupiedCellError(index, current)
        if mark is None:
            mark = self.active_mark
        elif mark not in MARKS:
            raise ValueError(f"Unknown mark {mark!r}")
        self.cells[index] = mark
        self.turns_played += 1
        self.active_mark = other_mark(mark)

    def undo(self, index: int) -> None:
        # Search scratch only: the authoritative board is cleared via reset().
        mark = self.cells[index]
        if mark == EMPTY:
            raise ValueError(f"Cell {index} is already empty")
        self.cells[index] = EMPTY
        self.turns_played -= 1
        self.active_mark = mark

    def reset(self) -> None:
        self.cells = [EMPTY] * 9
        self.turns_played = 0
        self.active_mark = FIRST_MARK

    def clone(self) -> "Board":
        return Board(
            cells=self.cells.copy(),
            turns_played=self.turns_played,
            active_mark=self.active_mark,
        )

    # ---- queries ----

    def evaluate_line(self, line: Line, mark: Mark) -> bool:
        a, b, c = line
        cells = self.cells
        return cells[a] == mark and cells[b] == mark and cells[c] == mark

    def check_win(self, mark: Mark) -> Optional[Line]:
        """First line in ``WINNING_LINES`` order fully held by ``mark``."""
        for line in WINNING_LINES:
            if self.evaluate_line(line, mark):
                return line
        return None

    def is_full(self) -> bool:
        return EMPTY not in self.cells

    def empty_indices(self) -> List[int]:
        return [i for i, c in enumerate(self.cells) if c == EMPTY]

    def outcome(self) -> Outcome:
        for mark in MARKS:
            line = self.check_win(mark)
            if line is not None:
                return Outcome(status=WIN, winner=mark, line=line)
        if self.is_full():
            return Outcome(status=DRAW)
        return Outcome()

    def __str__(self) -> str:
        rows = []
        for r in range(3):
            rows.append(" | ".join(c if c != EMPTY else "." for c in self.cells[r * 3 : r * 3 + 3]))
        return "\n".join(rows)
