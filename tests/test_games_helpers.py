import random

from engine import turn_engine
from engine.effects import activate_reward, collect_reward
from models.domain_models import MineKind, RewardKind
from routes.games_helpers import censor_game_state
from tests.fixtures.game_factory import T0, put_special, set_rack


def test_frozen_letters_are_a_count_for_the_opponent(session):
    set_rack(session, "bob", "KTAELMS")
    collect_reward(session, "alice", RewardKind.LETTER_BAN, [])
    activate_reward(session, "alice", RewardKind.LETTER_BAN, random.Random(0), [])
    assert sum(session.bans["bob"].frozen_letters.values()) == 2

    seen_by_alice = censor_game_state(session, "alice", now=T0)
    assert seen_by_alice["racks"]["bob"] == {"hidden": 7}
    assert seen_by_alice["bans"]["bob"]["frozenLetters"] == 2

    seen_by_bob = censor_game_state(session, "bob", now=T0)
    assert seen_by_bob["bans"]["bob"]["frozenLetters"] == session.bans["bob"].frozen_letters


def test_parked_mines_are_shown_only_to_the_mover(session, lexicon):
    set_rack(session, "alice", "KEL")
    put_special(session, (7, 7), mine=MineKind.SCORE_SPLIT)
    placed = turn_engine.place_letter(session, "alice", (7, 7), "K", lexicon=lexicon).session
    assert placed.pending.deferred_mines == [MineKind.SCORE_SPLIT]

    assert censor_game_state(placed, "alice", now=T0)["pending"]["deferredMines"] == ["scoreSplit"]
    assert "deferredMines" not in censor_game_state(placed, "bob", now=T0)["pending"]
    assert "deferredMines" not in censor_game_state(placed, None, now=T0)["pending"]
