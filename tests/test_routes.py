import asyncio
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from engine import get_lexicon
from infrastructure.notifier import LocalSessionNotifier
from stores import get_game_store
from stores.sqlite_game_store import SqliteGameStore
from tests.fixtures.game_factory import make_session, set_rack
from utils import now_utc


@pytest.fixture
def api(tmp_path, lexicon, monkeypatch):
    import main
    from routes import games as games_routes

    store = SqliteGameStore(str(tmp_path / "api.sqlite3"), timeout=5.0, notifier=LocalSessionNotifier())
    asyncio.run(store.init())

    scheduled = Mock()
    monkeypatch.setattr(games_routes, "resolve_timeout_task", SimpleNamespace(apply_async=scheduled))
    main.app.dependency_overrides[get_game_store] = lambda: store
    main.app.dependency_overrides[get_lexicon] = lambda: lexicon

    yield SimpleNamespace(client=TestClient(main.app), store=store, scheduled=scheduled)

    main.app.dependency_overrides.clear()


def _live_session(api, *, started=None, **kwargs):
    session = make_session(now=started or now_utc(), **kwargs)
    set_rack(session, "alice", "ATKLEMA")
    set_rack(session, "bob", "EKLAMER")
    asyncio.run(api.store.create_session(session))
    return session


def _post(api, path, **body):
    return api.client.post(f"/games/api/{path}", json=body)


# -------------------------------------------------
# Profiles
# -------------------------------------------------

def test_profile_lifecycle(api):
    created = api.client.post("/players/api/create_profile", json={"uid": "u1", "username": "Ayşe Yılmaz"})
    assert created.status_code == 201
    assert created.json()["username"] == "Ayşe Yılmaz"

    again = api.client.post("/players/api/create_profile", json={"uid": "u1", "username": "Ayşe"})
    assert again.status_code == 409

    bad = api.client.post("/players/api/create_profile", json={"uid": "u2", "username": "<script>"})
    assert bad.status_code == 400

    profile = api.client.get("/players/api/profile", params={"uid": "u1"})
    assert profile.status_code == 200
    assert profile.json()["uid"] == "u1"
    assert api.client.get("/players/api/profile", params={"uid": "ghost"}).status_code == 404


# -------------------------------------------------
# Matchmaking
# -------------------------------------------------

def test_find_match_queues_then_pairs(api):
    first = _post(api, "find_match", uid="alice", duration_class="2dk")
    assert first.status_code == 202
    assert first.json() == {"game_id": None, "queued": True}
    assert api.client.get("/games/api/poll_match", params={"uid": "alice"}).json() == {"game_id": None}

    second = _post(api, "find_match", uid="bob", duration_class="2dk")
    assert second.status_code == 201
    game_id = second.json()["game_id"]
    assert game_id

    api.scheduled.assert_called_once()
    assert api.scheduled.call_args.kwargs["args"] == [game_id]
    assert api.client.get("/games/api/poll_match", params={"uid": "alice"}).json() == {"game_id": game_id}


def test_find_match_rejects_unknown_duration(api):
    response = _post(api, "find_match", uid="alice", duration_class="3dk")
    assert response.status_code == 400


def test_cancel_match(api):
    _post(api, "find_match", uid="alice", duration_class="5dk")
    response = _post(api, "cancel_match", uid="alice", duration_class="5dk")
    assert response.json() == {"uid": "alice", "removed": 1}


# -------------------------------------------------
# Game state
# -------------------------------------------------

def test_game_state_is_censored_for_the_viewer(api):
    session = _live_session(api, clear_specials=False)
    state = api.client.get("/games/api/game_state", params={"game_id": session.id, "uid": "alice"}).json()

    assert state["racks"]["alice"] == session.racks["alice"]
    assert state["racks"]["bob"] == {"hidden": 7}
    assert "seed" not in state
    assert all("mine" not in t and "reward" not in t for row in state["board"] for t in row)
    assert state["phase"] == "waitingFirstMove"
    assert 0 < state["remainingSeconds"] <= 120


def test_unknown_game(api):
    response = api.client.get("/games/api/game_state", params={"game_id": "missing", "uid": "alice"})
    assert response.status_code == 404


# -------------------------------------------------
# Turn actions
# -------------------------------------------------

def test_play_a_turn(api):
    session = _live_session(api)

    not_yours = _post(api, "place_letter", uid="bob", game_id=session.id, row=7, col=7, symbol="E")
    assert not_yours.status_code == 409

    placed = _post(api, "place_letter", uid="alice", game_id=session.id, row=7, col=7, symbol="A")
    assert placed.status_code == 200
    assert placed.json()["game"]["board"][7][7]["letter"] == "A"
    assert placed.json()["events"][0]["kind"] == "letter_placed"

    _post(api, "place_letter", uid="alice", game_id=session.id, row=7, col=8, symbol="T")
    confirmed = _post(api, "confirm_move", uid="alice", game_id=session.id)
    assert confirmed.status_code == 200
    game = confirmed.json()["game"]
    assert game["player1Score"] == 2
    assert game["currentTurn"] == "bob"
    assert game["phase"] == "inProgress"

    stored = asyncio.run(api.store.read_session(session.id))
    assert stored.version == 3


def test_rule_violation_is_a_bad_request(api):
    session = _live_session(api)
    response = _post(api, "place_letter", uid="alice", game_id=session.id, row=0, col=0, symbol="A")
    assert response.status_code == 400
    assert response.json()["detail"]["rule"] == "FirstMoveMustBeCenter"

    invalid = _post(api, "place_letter", uid="alice", game_id=session.id, row=7, col=7, symbol="K")
    assert invalid.status_code == 200
    _post(api, "place_letter", uid="alice", game_id=session.id, row=7, col=8, symbol="T")
    rejected = _post(api, "confirm_move", uid="alice", game_id=session.id)
    assert rejected.status_code == 400
    assert rejected.json()["detail"]["rule"] == "InvalidWord"

    reverted = _post(api, "revert_placement", uid="alice", game_id=session.id)
    assert reverted.status_code == 200
    assert reverted.json()["game"]["board"][7][7]["letter"] is None


def test_move_and_pass(api):
    session = _live_session(api)
    _post(api, "place_letter", uid="alice", game_id=session.id, row=7, col=7, symbol="A")
    _post(api, "place_letter", uid="alice", game_id=session.id, row=7, col=8, symbol="T")
    moved = _post(api, "move_letter", uid="alice", game_id=session.id, from_row=7, from_col=8, to_row=8, to_col=8)
    assert moved.status_code == 200
    assert moved.json()["game"]["board"][8][8]["letter"] == "T"

    passed = _post(api, "pass", uid="alice", game_id=session.id)
    assert passed.json()["game"]["player1PassCount"] == 1
    assert passed.json()["game"]["currentTurn"] == "bob"


def test_activate_reward_not_held(api):
    session = _live_session(api)
    response = _post(api, "activate_reward", uid="alice", game_id=session.id, kind="letterBan")
    assert response.status_code == 400
    assert response.json()["detail"]["rule"] == "RewardNotHeld"


def test_surrender_ends_the_game(api):
    session = _live_session(api)
    response = _post(api, "surrender", uid="bob", game_id=session.id)
    assert response.status_code == 200
    game = response.json()["game"]
    assert game["status"] == "finished"
    assert game["winner"] == "alice"

    after = _post(api, "pass", uid="alice", game_id=session.id)
    assert after.status_code == 409

    games = api.client.get("/games/api/my_games", params={"uid": "alice"}).json()["games"]
    assert games[0]["gameId"] == session.id
    assert games[0]["winner"] == "alice"
    assert api.client.get("/games/api/my_games", params={"uid": "alice", "active_only": True}).json() == {"games": []}


def test_expired_game_is_finished_on_the_next_action(api):
    session = _live_session(api, started=now_utc() - timedelta(seconds=121))

    response = _post(api, "place_letter", uid="alice", game_id=session.id, row=7, col=7, symbol="A")
    assert response.status_code == 409

    state = api.client.get("/games/api/game_state", params={"game_id": session.id, "uid": "bob"}).json()
    assert state["status"] == "finished"
    assert state["loser"] == "alice"
    assert state["finishReason"] == "timeout"


def test_resolve_timeout_endpoint_leaves_live_games_alone(api):
    session = _live_session(api)
    response = _post(api, "resolve_timeout", uid="alice", game_id=session.id)
    assert response.status_code == 200
    assert response.json()["status"] == "active"
