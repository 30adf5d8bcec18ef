"""FastAPI-powered web UI for playing tic-tac-toe against the search engine."""

from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ai import Difficulty, SearchEngine
from .board import DRAW, MARKS, WIN, Board, Mark, Outcome, other_mark

logger = logging.getLogger(__name__)


DEFAULT_DIFFICULTY = Difficulty.UNBEATABLE
AI_THINK_DELAY: Tuple[float, float] = (0.4, 0.9)


class GameOverError(ValueError):
    def __init__(self) -> None:
        super().__init__("Game already finished")


class NotYourTurnError(ValueError):
    def __init__(self, mark: Mark) -> None:
        super().__init__(f"It is not {mark}'s turn")
        self.mark = mark


@dataclass
class GameSession:
    """A running match: the board, the opponent, and the scoreboard."""

    human_mark: Mark = "X"
    difficulty: Difficulty = DEFAULT_DIFFICULTY
    board: Board = field(default_factory=Board)
    engine: SearchEngine = field(default_factory=SearchEngine, repr=False)
    scores: Dict[str, int] = field(default_factory=lambda: {m: 0 for m in MARKS})
    draws: int = 0
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    ai_pending: bool = False
    # Bumped on every rematch/restart; queued AI turns from older games are dropped.
    game_number: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def ai_mark(self) -> Mark:
        return other_mark(self.human_mark)

    def outcome(self) -> Outcome:
        return self.board.outcome()

    def ai_to_move(self) -> bool:
        return (
            not self.outcome().finished and self.board.active_mark == self.ai_mark
        )

    def apply_move(self, index: int, mark: Mark) -> Outcome:
        """Place ``mark`` through the board and settle the score if it ends the game."""
        if self.outcome().finished:
            raise GameOverError()
        if mark != self.board.active_mark:
            raise NotYourTurnError(mark)

        self.board.place(index, mark)
        self.move_log.append({"player": mark, "cellIndex": index})

        result = self.outcome()
        if result.status == WIN:
            self.scores[result.winner] += 1
            logger.info(
                "%s wins on line %s after %d turns",
                result.winner, result.line, self.board.turns_played,
            )
        elif result.status == DRAW:
            self.draws += 1
            logger.info("Game drawn")
        return result

    def play_ai_turn(self) -> Optional[int]:
        if not self.ai_to_move():
            return None
        index = self.engine.select_move(
            self.board, self.ai_mark, self.human_mark, self.difficulty
        )
        self.apply_move(index, self.ai_mark)
        return index

    def rematch(self, difficulty: Optional[Difficulty] = None) -> None:
        if difficulty is not None:
            self.difficulty = Difficulty(difficulty)
        self.board.reset()
        self.move_log.clear()
        self.ai_pending = False
        self.game_number += 1

    def restart(self, difficulty: Optional[Difficulty] = None) -> None:
        self.rematch(difficulty)
        self.scores = {m: 0 for m in MARKS}
        self.draws = 0


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="Tic-Tac-Toe", description="Tic-tac-toe against a minimax opponent")


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    model_config = ConfigDict(populate_by_name=True)

    difficulty: Difficulty = Field(
        default=DEFAULT_DIFFICULTY,
        description="How often the opponent accepts a worse move",
    )
    human_mark: str = Field(default="X", alias="humanMark")

    @field_validator("human_mark")
    @classmethod
    def ensure_known_mark(cls, value: str) -> str:
        value = value.upper()
        if value not in MARKS:
            raise ValueError(f"Unsupported mark {value!r}. Choose X or O.")
        return value


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0, le=8)


class ResetRequest(BaseModel):
    difficulty: Optional[Difficulty] = None


def _create_session(difficulty: Difficulty, human_mark: Mark) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    session = GameSession(human_mark=human_mark, difficulty=difficulty)
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info(
        "Created game %s (human %s, %s)", session_id, human_mark, difficulty.value
    )
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _run_ai_turn(game_id: str, game_number: int) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    time.sleep(max(0.0, random.uniform(*AI_THINK_DELAY)))

    with session.lock:
        if session.game_number != game_number:
            logger.debug("Dropping stale AI turn for game %s", game_id)
            return
        try:
            session.play_ai_turn()
        finally:
            session.ai_pending = False


def _schedule_ai(
    game_id: str, session: GameSession, background_tasks: Optional[BackgroundTasks]
) -> None:
    # Caller holds session.lock.
    if session.ai_to_move():
        session.ai_pending = True
        if background_tasks is not None:
            background_tasks.add_task(_run_ai_turn, game_id, session.game_number)


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        board = session.board
        result = board.outcome()
        state: Dict[str, object] = {
            "id": game_id,
            "cells": [c if c in MARKS else "" for c in board.cells],
            "currentPlayer": board.active_mark,
            "turnsPlayed": board.turns_played,
            "status": result.status,
            "winner": result.winner,
            "winningLine": list(result.line) if result.line else None,
            "difficulty": session.difficulty.value,
            "humanMark": session.human_mark,
            "aiMark": session.ai_mark,
            "scores": dict(session.scores),
            "draws": session.draws,
            "moveLog": list(session.move_log),
            "aiPending": session.ai_pending,
        }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _apply_player_move(
    game_id: str,
    session: GameSession,
    cell_index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    with session.lock:
        if session.ai_pending:
            raise HTTPException(status_code=400, detail="AI is completing its move")
        try:
            session.apply_move(cell_index, session.human_mark)
        except ValueError as exc:
            logger.warning("Rejected move %s in game %s: %s", cell_index, game_id, exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        _schedule_ai(game_id, session, background_tasks)


@app.post("/api/game")
def create_game(
    request: NewGameRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    game_id, session = _create_session(request.difficulty, request.human_mark)
    with session.lock:
        _schedule_ai(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    _apply_player_move(game_id, session, request.cell_index, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/rematch")
def rematch(
    game_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[ResetRequest] = None,
) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.rematch(request.difficulty if request else None)
        _schedule_ai(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/restart")
def restart(
    game_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[ResetRequest] = None,
) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.restart(request.difficulty if request else None)
        _schedule_ai(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Tic-Tac-Toe</title>
    <style>
      :root {
        color-scheme: light;
        font-family: system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
      }
      body {
        margin: 0;
        background: radial-gradient(circle at top, #f2f5ff, #dbe0ff 40%, #cfd8ff 70%);
        min-height: 100vh;
        display: flex;
        justify-content: center;
        padding: 2rem 1rem;
        color: #13203a;
      }
      main {
        background: rgba(255, 255, 255, 0.92);
        border-radius: 18px;
        box-shadow: 0 20px 40px rgba(34, 47, 79, 0.16);
        padding: 2rem;
        width: min(480px, 100%);
        text-align: center;
      }
      .controls {
        display: flex;
        gap: 0.6rem;
        justify-content: center;
        flex-wrap: wrap;
        margin-bottom: 1.25rem;
      }
      button,
      select {
        font-size: 1rem;
        padding: 0.5rem 0.9rem;
        border-radius: 999px;
        border: 1px solid rgba(60, 70, 120, 0.25);
        background: white;
        cursor: pointer;
        font-family: inherit;
      }
      .grid {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 8px;
        margin: 0 auto 1rem;
        width: min(320px, 100%);
      }
      .cell {
        aspect-ratio: 1;
        border-radius: 14px;
        font-size: 2.6rem;
        font-weight: 700;
        padding: 0;
      }
      .cell.win {
        background: #ffe7a3;
      }
      .scores {
        display: flex;
        justify-content: space-around;
        font-weight: 600;
        margin-bottom: 0.75rem;
      }
      #status {
        min-height: 1.5rem;
        font-weight: 500;
      }
    </style>
  </head>
  <body>
    <main>
      <h1>Tic-Tac-Toe</h1>
      <div class=\"controls\">
        <select id=\"difficulty\">
          <option value=\"easy\">Easy</option>
          <option value=\"normal\">Normal</option>
          <option value=\"unbeatable\" selected>Unbeatable</option>
        </select>
        <select id=\"mark\">
          <option value=\"X\" selected>Play X</option>
          <option value=\"O\">Play O</option>
        </select>
        <button id=\"new-game\">New game</button>
        <button id=\"rematch\" disabled>Rematch</button>
        <button id=\"restart\" disabled>Restart</button>
      </div>
      <div class=\"scores\">
        <span>X: <span id=\"score-x\">0</span></span>
        <span>Draws: <span id=\"score-draw\">0</span></span>
        <span>O: <span id=\"score-o\">0</span></span>
      </div>
      <div class=\"grid\" id=\"grid\"></div>
      <p id=\"status\">Pick a difficulty and start a game.</p>
    </main>
    <script>
      const grid = document.getElementById('grid');
      const statusEl = document.getElementById('status');
      const cells = [];
      let gameId = null;
      let state = null;
      let pollTimer = null;

      for (let i = 0; i < 9; i++) {
        const button = document.createElement('button');
        button.className = 'cell';
        button.addEventListener('click', () => playCell(i));
        grid.appendChild(button);
        cells.push(button);
      }

      function render(next) {
        state = next;
        const humanTurn =
          state.status === 'in_progress' &&
          !state.aiPending &&
          state.currentPlayer === state.humanMark;
        const line = state.winningLine || [];
        state.cells.forEach((value, index) => {
          cells[index].textContent = value;
          cells[index].disabled = !humanTurn || value !== '';
          cells[index].classList.toggle('win', line.includes(index));
        });
        document.getElementById('score-x').textContent = state.scores.X;
        document.getElementById('score-o').textContent = state.scores.O;
        document.getElementById('score-draw').textContent = state.draws;
        document.getElementById('rematch').disabled = false;
        document.getElementById('restart').disabled = false;
        if (state.status === 'win') {
          statusEl.textContent = `Player ${state.winner} has won the game!`;
        } else if (state.status === 'draw') {
          statusEl.textContent = 'DRAW';
        } else if (humanTurn) {
          statusEl.textContent = `Your move (${state.humanMark})`;
        } else {
          statusEl.textContent = 'Opponent is thinking…';
        }
        schedulePoll();
      }

      function schedulePoll() {
        clearTimeout(pollTimer);
        if (state && state.aiPending) {
          pollTimer = setTimeout(refresh, 250);
        }
      }

      async function send(url, body) {
        const response = await fetch(url, {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify(body || {}),
        });
        const payload = await response.json();
        if (!response.ok) {
          const detail = Array.isArray(payload.detail) ? payload.detail[0].msg : payload.detail;
          statusEl.textContent = detail || 'Request failed';
          return;
        }
        gameId = payload.id;
        render(payload);
      }

      async function refresh() {
        if (!gameId) return;
        const response = await fetch(`/api/game/${gameId}`);
        if (response.ok) {
          render(await response.json());
        }
      }

      function playCell(index) {
        if (!gameId) return;
        send(`/api/game/${gameId}/move`, { cellIndex: index });
      }

      const difficulty = () => document.getElementById('difficulty').value;

      document.getElementById('new-game').addEventListener('click', () => {
        send('/api/game', {
          difficulty: difficulty(),
          humanMark: document.getElementById('mark').value,
        });
      });
      document.getElementById('rematch').addEventListener('click', () => {
        if (gameId) send(`/api/game/${gameId}/rematch`, { difficulty: difficulty() });
      });
      document.getElementById('restart').addEventListener('click', () => {
        if (gameId) send(`/api/game/${gameId}/restart`, { difficulty: difficulty() });
      });
    </script>
  </body>
</html>
"""
