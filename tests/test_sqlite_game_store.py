import asyncio
import json
from datetime import timedelta

import pytest

from db import connect
from engine import create_session, surrender
from models.domain_models import SessionStatus
from stores import GameNotFound, InvalidState, PlayerAlreadyExists, PlayerNotFound, StaleWrite
from tests.fixtures.game_factory import T0, make_session


def _builder(now=T0):
    def build(waiting, requester, duration_class):
        return create_session(waiting, requester, duration_class, now, seed=99)
    return build


async def test_create_and_read_session(store):
    session = make_session()
    await store.create_session(session)
    loaded = await store.read_session(session.id)
    assert loaded.id == session.id
    assert loaded.version == 0
    assert loaded.model_dump(exclude={"updated_at"}) == session.model_dump(exclude={"updated_at"})


async def test_read_missing_session(store):
    with pytest.raises(GameNotFound):
        await store.read_session("nope")


async def test_write_session_merges_fields_and_bumps_version(store):
    session = await store.create_session(make_session())
    stored = await store.write_session(session.id, {"player1Score": 12, "current_turn": "bob"})
    assert stored.player1_score == 12
    assert stored.current_turn == "bob"
    assert stored.version == 1
    assert (await store.read_session(session.id)).player1_score == 12


async def test_write_session_with_stale_version(store):
    session = await store.create_session(make_session())
    await store.write_session(session.id, {"player1Score": 1}, expected_version=0)
    with pytest.raises(StaleWrite):
        await store.write_session(session.id, {"player1Score": 2}, expected_version=0)


async def test_write_session_rejects_invalid_values(store):
    session = await store.create_session(make_session())
    with pytest.raises(InvalidState):
        await store.write_session(session.id, {"version": 5})
    with pytest.raises(InvalidState):
        await store.write_session(session.id, {"player1Score": "lots"})


async def test_legacy_row_missing_a_player_is_invalid_state(store):
    legacy = {"id": "old-1", "player1": "alice", "turn": "alice", "duration": "2dk", "board": "[]"}
    conn = await connect(store.db_path)
    try:
        await conn.execute(
            "INSERT INTO game_sessions (game_id, player1, player2, status, version, deadline, created_at, updated_at, document)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            ("old-1", "alice", "", "active", 0, T0.isoformat(), T0.isoformat(), T0.isoformat(), json.dumps(legacy)),
        )
        await conn.commit()
    finally:
        await conn.close()

    with pytest.raises(InvalidState):
        await store.read_session("old-1")


async def test_update_session_is_compare_and_update(store):
    session = await store.create_session(make_session())
    stored = await store.update_session(session.id, lambda s: surrender(s, "bob").session)
    assert stored.status == SessionStatus.FINISHED
    assert stored.version == 1

    # A mutation that returns its input writes nothing.
    same = await store.update_session(session.id, lambda s: s)
    assert same.version == 1


async def test_failed_mutation_writes_nothing(store):
    session = await store.create_session(make_session())

    def boom(s):
        raise RuntimeError("rejected")

    with pytest.raises(RuntimeError):
        await store.update_session(session.id, boom)
    assert (await store.read_session(session.id)).version == 0


async def test_finishing_a_game_records_both_profiles(store):
    await store.create_user_profile("alice", "Alice")
    session = await store.create_session(make_session())
    await store.update_session(session.id, lambda s: surrender(s, "bob").session)

    alice = await store.read_user_profile("alice")
    bob = await store.read_user_profile("bob")
    assert (alice.total_games, alice.won_games) == (1, 1)
    assert (bob.total_games, bob.won_games) == (1, 0)
    assert alice.success_rate == 100.0


async def test_profiles(store):
    profile = await store.create_user_profile("u1", "Ayşe")
    assert profile.success_rate == 0.0
    with pytest.raises(PlayerAlreadyExists):
        await store.create_user_profile("u1", "Ayşe")
    updated = await store.write_user_profile("u1", {"totalGames": 4, "won_games": 1})
    assert updated.success_rate == 25.0
    with pytest.raises(PlayerNotFound):
        await store.read_user_profile("u2")
    with pytest.raises(InvalidState):
        await store.write_user_profile("u1", {"uid": "u3"})


async def test_queue_primitives(store):
    first = await store.enqueue_match("2dk", "alice")
    await store.enqueue_match("2dk", "bob")
    oldest = await store.dequeue_oldest_match("2dk")
    assert oldest.id == first
    assert oldest.requesting_player == "alice"
    await store.delete_match_entry(first)
    assert (await store.dequeue_oldest_match("2dk")).requesting_player == "bob"
    assert await store.dequeue_oldest_match("5dk") is None


async def test_find_or_create_match_pairs_the_oldest_waiting_player(store):
    assert await store.find_or_create_match("alice", "2dk", _builder()) is None
    # Asking again does not queue alice twice, nor match her with herself.
    assert await store.find_or_create_match("alice", "2dk", _builder()) is None

    session = await store.find_or_create_match("bob", "2dk", _builder())
    assert session is not None
    assert session.players == ("alice", "bob")
    assert await store.dequeue_oldest_match("2dk") is None
    assert (await store.read_session(session.id)).id == session.id


async def test_simultaneous_requests_create_one_session(store):
    results = await asyncio.gather(
        store.find_or_create_match("alice", "5dk", _builder()),
        store.find_or_create_match("bob", "5dk", _builder()),
    )
    sessions = [r for r in results if r is not None]
    assert len(sessions) == 1
    assert set(sessions[0].players) == {"alice", "bob"}
    assert await store.dequeue_oldest_match("5dk") is None
    assert len(await store.list_sessions_for_player("alice")) == 1


async def test_cancel_match(store):
    await store.enqueue_match("2dk", "alice")
    await store.enqueue_match("5dk", "alice")
    assert await store.cancel_match("alice", "2dk") == 1
    assert await store.cancel_match("alice") == 1
    assert await store.dequeue_oldest_match("5dk") is None


async def test_expired_and_player_listings(store):
    short = await store.create_session(make_session(game_id="short"))
    await store.create_session(make_session(game_id="long", duration_class="24s", duration_seconds=86400))

    expired = await store.list_expired_sessions(T0 + timedelta(seconds=121))
    assert expired == [short.id]

    active = await store.list_sessions_for_player("bob", active_only=True)
    assert {s.id for s in active} == {"short", "long"}
    assert await store.list_sessions_for_player("carol") == []


async def test_subscribers_hear_about_writes(store):
    session = await store.create_session(make_session())
    heard = []

    async def listener(game_id):
        heard.append(game_id)

    unsubscribe = await store.subscribe_session(session.id, listener)
    await store.write_session(session.id, {"player2Score": 3})
    unsubscribe()
    await store.write_session(session.id, {"player2Score": 4})
    assert heard == [session.id]


async def test_housekeeping(store):
    await store.enqueue_match("2dk", "alice")
    assert await store.purge_stale_queue_entries(3600) == 0
    assert await store.purge_stale_queue_entries(-1) == 1

    session = await store.create_session(make_session())
    await store.update_session(session.id, lambda s: surrender(s, "alice").session)
    assert await store.delete_finished_sessions(older_than_days=30) == 0
    assert await store.delete_finished_sessions(older_than_days=-1) == 1
    with pytest.raises(GameNotFound):
        await store.read_session(session.id)
