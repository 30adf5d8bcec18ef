"""Tests for the FastAPI tic-tac-toe interface."""

from __future__ import annotations

from fastapi.testclient import TestClient

from tictactoe import ui
from tictactoe.ui import app


client = TestClient(app)
ui.AI_THINK_DELAY = (0.0, 0.0)


def _new_game(**payload):
    response = client.post("/api/game", json=payload)
    assert response.status_code == 200
    return response.json()


def _play_out(game_id: str) -> dict:
    """Human takes the lowest empty cell each turn until the game ends."""
    state = client.get(f"/api/game/{game_id}").json()
    while state["status"] == "in_progress":
        cell = state["cells"].index("")
        response = client.post(f"/api/game/{game_id}/move", json={"cellIndex": cell})
        assert response.status_code == 200
        state = client.get(f"/api/game/{game_id}").json()
    return state


def test_create_game_defaults():
    payload = _new_game()
    assert payload["currentPlayer"] == "X"
    assert payload["humanMark"] == "X"
    assert payload["aiMark"] == "O"
    assert payload["difficulty"] == "unbeatable"
    assert payload["status"] == "in_progress"
    assert payload["cells"] == [""] * 9
    assert payload["moveLog"] == []
    assert payload["scores"] == {"X": 0, "O": 0}
    assert payload["aiPending"] is False


def test_create_game_and_first_move():
    game_id = _new_game(difficulty="unbeatable")["id"]

    move_response = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 4})
    assert move_response.status_code == 200
    state = move_response.json()
    assert state["cells"][4] == "X"
    assert state["moveLog"][0] == {"player": "X", "cellIndex": 4}
    assert state["currentPlayer"] == "O"
    assert state["aiPending"] is True

    follow_up = client.get(f"/api/game/{game_id}")
    assert follow_up.status_code == 200
    final_state = follow_up.json()
    assert final_state["currentPlayer"] == "X"
    assert final_state["aiPending"] is False
    assert final_state["lastMove"]["player"] == "O"
    assert final_state["lastMove"]["cellIndex"] in (0, 2, 6, 8)
    assert final_state["turnsPlayed"] == 2


def test_ai_opens_when_human_plays_o():
    payload = _new_game(humanMark="o", difficulty="normal")
    assert payload["humanMark"] == "O"
    assert payload["aiPending"] is True

    state = client.get(f"/api/game/{payload['id']}").json()
    assert state["cells"].count("X") == 1
    assert state["currentPlayer"] == "O"


def test_occupied_cell_rejected():
    game_id = _new_game()["id"]
    assert client.post(f"/api/game/{game_id}/move", json={"cellIndex": 0}).status_code == 200

    duplicate_move = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 0})
    assert duplicate_move.status_code == 400
    assert duplicate_move.json()["detail"]


def test_out_of_range_cell_rejected():
    game_id = _new_game()["id"]
    response = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 9})
    assert response.status_code == 422


def test_rejects_unknown_difficulty_and_mark():
    assert client.post("/api/game", json={"difficulty": "impossible"}).status_code == 422
    assert client.post("/api/game", json={"humanMark": "Z"}).status_code == 422


def test_unknown_game_returns_404():
    assert client.get("/api/game/missing").status_code == 404
    response = client.post("/api/game/missing/move", json={"cellIndex": 0})
    assert response.status_code == 404


def test_finished_game_rejects_moves_and_keeps_score():
    game_id = _new_game()["id"]
    state = _play_out(game_id)

    # Unbeatable never loses to the lowest-empty-cell strategy.
    assert state["status"] in ("win", "draw")
    if state["status"] == "win":
        assert state["winner"] == "O"
        assert state["scores"] == {"X": 0, "O": 1}
        assert len(state["winningLine"]) == 3
    else:
        assert state["draws"] == 1

    if "" in state["cells"]:
        cell = state["cells"].index("")
        late = client.post(f"/api/game/{game_id}/move", json={"cellIndex": cell})
        assert late.status_code == 400


def test_rematch_keeps_scores_and_restart_clears_them():
    game_id = _new_game()["id"]
    finished = _play_out(game_id)

    rematch = client.post(f"/api/game/{game_id}/rematch", json={"difficulty": "easy"})
    assert rematch.status_code == 200
    state = rematch.json()
    assert state["cells"] == [""] * 9
    assert state["moveLog"] == []
    assert state["difficulty"] == "easy"
    assert state["scores"] == finished["scores"]
    assert state["draws"] == finished["draws"]

    restart = client.post(f"/api/game/{game_id}/restart")
    assert restart.status_code == 200
    state = restart.json()
    assert state["scores"] == {"X": 0, "O": 0}
    assert state["draws"] == 0
    assert state["difficulty"] == "easy"


def test_index_page_served():
    response = client.get("/")
    assert response.status_code == 200
    assert "Tic-Tac-Toe" in response.text


def test_move_rejected_while_ai_is_thinking():
    game_id = _new_game()["id"]
    ui.SESSIONS[game_id].ai_pending = True
    try:
        response = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 0})
        assert response.status_code == 400
        assert response.json()["detail"] == "AI is completing its move"
    finally:
        ui.SESSIONS[game_id].ai_pending = False

    state = client.get(f"/api/game/{game_id}").json()
    assert state["cells"] == [""] * 9
    assert state["moveLog"] == []


def test_stale_ai_turn_dropped_after_rematch():
    game_id = _new_game(humanMark="O")["id"]
    session = ui.SESSIONS[game_id]
    stale_number = session.game_number

    rematch = client.post(f"/api/game/{game_id}/rematch")
    assert rematch.status_code == 200
    after_rematch = client.get(f"/api/game/{game_id}").json()
    assert after_rematch["cells"].count("X") == 1

    session.ai_pending = True
    ui._run_ai_turn(game_id, stale_number)

    state = client.get(f"/api/game/{game_id}").json()
    assert state["cells"] == after_rematch["cells"]
    assert state["aiPending"] is True
    session.ai_pending = False


def test_index_page_shows_validation_messages():
    response = client.get("/")
    assert "Array.isArray(payload.detail)" in response.text
    assert "payload.detail[0].msg" in response.text
