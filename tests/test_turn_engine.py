import pytest

from engine import (
    CellBanned,
    FirstMoveMustBeCenter,
    GameFinished,
    InvalidLetter,
    InvalidWord,
    LetterFrozen,
    LetterNotInRack,
    NoPendingPlacement,
    NoWordFormed,
    NotAdjacent,
    NotAPlayer,
    NotYourTurn,
    PassLimitExceeded,
    TileNotMovable,
    activate_reward,
    confirm_move,
    finish_by_score,
    move_letter,
    new_session,
    pass_turn,
    phase,
    place_letter,
    pool_invariant_total,
    resolve_timeout,
    revert_placement,
    surrender,
)
from engine.constants import CENTER, MINE_COUNTS, RACK_SIZE, REWARD_COUNTS, TOTAL_TILES
from engine.letter_pool import count_vowels, rack_size
from models.domain_models import FinishReason, GamePhase, MineKind, RewardKind, SessionStatus
from tests.fixtures.game_factory import T0, after, lay_word, make_session, plain_board, put_special, set_rack


def _place_all(session, player, cells, lexicon):
    for pos, symbol in cells:
        session = place_letter(session, player, pos, symbol, lexicon=lexicon).session
    return session


def _kalem(session, lexicon):
    """alice lays KALEM from the center to the right, unconfirmed."""
    set_rack(session, "alice", "KALEM")
    cells = [((7, 7 + i), symbol) for i, symbol in enumerate("KALEM")]
    return _place_all(session, "alice", cells, lexicon)


# -------------------------------------------------
# Setup
# -------------------------------------------------

def test_new_session_deals_both_racks():
    s = make_session(clear_specials=False, empty_racks=False)
    for player in s.players:
        assert rack_size(s.racks[player]) == RACK_SIZE
        assert count_vowels(s.racks[player]) >= 2
    assert pool_invariant_total(s) == TOTAL_TILES
    assert sum(1 for row in s.board for t in row if t.mine) == sum(n for _, n in MINE_COUNTS)
    assert sum(1 for row in s.board for t in row if t.reward) == sum(n for _, n in REWARD_COUNTS)
    assert s.status == SessionStatus.ACTIVE
    assert phase(s) == GamePhase.WAITING_FIRST_MOVE


def test_new_session_is_reproducible_from_its_seed():
    kwargs = dict(duration_class="5dk", duration_seconds=300, now=T0, seed=1234)
    first = new_session("g", "alice", "bob", **kwargs)
    second = new_session("g", "alice", "bob", **kwargs)
    assert first.model_dump() == second.model_dump()
    assert first.current_turn in ("alice", "bob")


# -------------------------------------------------
# Placement
# -------------------------------------------------

def test_rejected_actions_leave_the_session_untouched(session, lexicon):
    set_rack(session, "alice", "AT")
    set_rack(session, "bob", "E")
    before = session.model_dump()

    with pytest.raises(NotYourTurn):
        place_letter(session, "bob", CENTER, "E", lexicon=lexicon)
    with pytest.raises(LetterNotInRack):
        place_letter(session, "alice", CENTER, "K", lexicon=lexicon)
    with pytest.raises(FirstMoveMustBeCenter):
        place_letter(session, "alice", (7, 8), "A", lexicon=lexicon)
    with pytest.raises(NotAPlayer):
        place_letter(session, "carol", CENTER, "A", lexicon=lexicon)

    assert session.model_dump() == before


def test_place_letter_returns_a_new_session(session, lexicon):
    set_rack(session, "alice", "AT")
    result = place_letter(session, "alice", CENTER, "A", lexicon=lexicon)
    assert session.board[7][7].letter is None
    assert result.session.board[7][7].letter == "A"
    assert result.session.racks["alice"] == {"T": 1}
    assert result.session.pending.last_position == CENTER
    assert result.events[0].kind == "letter_placed"


def test_wildcard_needs_a_letter(session, lexicon):
    set_rack(session, "alice", "*K")
    with pytest.raises(InvalidLetter):
        place_letter(session, "alice", CENTER, "*", lexicon=lexicon)

    s = place_letter(session, "alice", CENTER, "*", lexicon=lexicon, as_letter="a").session
    assert s.board[7][7].letter == "A"
    assert s.board[7][7].is_wildcard
    s = place_letter(s, "alice", (7, 8), "K", lexicon=lexicon).session
    s = confirm_move(s, "alice", lexicon=lexicon).session
    # The wildcard scores nothing; K is worth 1.
    assert s.player1_score == 1


# -------------------------------------------------
# Confirm
# -------------------------------------------------

def test_confirm_scores_and_hands_over_the_turn(session, lexicon):
    set_rack(session, "alice", "ATKLEMA")
    s = _place_all(session, "alice", [(CENTER, "A"), ((7, 8), "T")], lexicon)
    result = confirm_move(s, "alice", lexicon=lexicon)
    s = result.session

    assert s.player1_score == 2
    assert s.current_turn == "bob"
    assert s.pending.tiles == []
    assert rack_size(s.racks["alice"]) == RACK_SIZE
    assert phase(s) == GamePhase.IN_PROGRESS
    assert pool_invariant_total(s) == TOTAL_TILES
    kinds = [e.kind for e in result.events]
    assert kinds[0] == "move_confirmed"
    assert kinds[-1] == "turn_switched"
    assert result.events[0].data["words"] == ["AT"]


def test_lone_letter_cannot_be_confirmed(session, lexicon):
    set_rack(session, "alice", "A")
    s = place_letter(session, "alice", CENTER, "A", lexicon=lexicon).session
    before = s.model_dump()
    with pytest.raises(NoWordFormed):
        confirm_move(s, "alice", lexicon=lexicon)
    assert s.model_dump() == before


def test_invalid_word_changes_nothing(session, lexicon):
    set_rack(session, "alice", "KT")
    s = _place_all(session, "alice", [(CENTER, "K"), ((7, 8), "T")], lexicon)
    before = s.model_dump()
    with pytest.raises(InvalidWord) as info:
        confirm_move(s, "alice", lexicon=lexicon)
    assert info.value.words == ["KT"]
    assert s.model_dump() == before
    assert s.current_turn == "alice"
    assert s.player1_score == 0


def test_confirm_without_placement(session, lexicon):
    with pytest.raises(NoPendingPlacement):
        confirm_move(session, "alice", lexicon=lexicon)


def test_only_words_through_the_last_tile_score(session, lexicon):
    # KALEM through the last tile at col 11; KALE ends one short and is ignored.
    plain_board(session)
    s = confirm_move(_kalem(session, lexicon), "alice", lexicon=lexicon).session
    assert s.player1_score == 6


# -------------------------------------------------
# Mines and rewards
# -------------------------------------------------

@pytest.mark.parametrize("mine, alice, bob", [
    (MineKind.SCORE_SPLIT, 6 * 3 // 10, 0),
    (MineKind.SCORE_TRANSFER, 0, 6),
    (MineKind.CANCEL_WORD, 0, 0),
])
def test_score_mines(session, lexicon, mine, alice, bob):
    plain_board(session)
    put_special(session, (7, 9), mine=mine)
    s = confirm_move(_kalem(session, lexicon), "alice", lexicon=lexicon).session
    assert (s.player1_score, s.player2_score) == (alice, bob)
    assert s.current_turn == "bob"
    assert s.board[7][9].mine is None


def test_block_multipliers_mine(session, lexicon):
    # (7, 11) doubles M; with the mine the word is scored at face value.
    plain = confirm_move(_kalem(make_session(), lexicon), "alice", lexicon=lexicon).session
    assert plain.player1_score == 8

    put_special(session, (7, 8), mine=MineKind.BLOCK_MULTIPLIERS)
    s = confirm_move(_kalem(session, lexicon), "alice", lexicon=lexicon).session
    assert s.player1_score == 6


def test_region_ban_applies_to_the_opponents_next_turn(session, lexicon):
    put_special(session, (7, 8), mine=MineKind.REGION_BAN)
    set_rack(session, "alice", "AK")
    s = _place_all(session, "alice", [(CENTER, "A"), ((7, 8), "K")], lexicon)
    s = confirm_move(s, "alice", lexicon=lexicon).session
    set_rack(s, "bob", "E")

    with pytest.raises(CellBanned):
        place_letter(s, "bob", (7, 9), "E", lexicon=lexicon)

    s = pass_turn(s, "bob").session
    assert s.bans["bob"].is_empty()


def test_letter_ban_freezes_opponent_tiles_for_one_turn(session, lexicon):
    session.rewards["alice"] = [RewardKind.LETTER_BAN]
    set_rack(session, "alice", "AK")
    set_rack(session, "bob", "EK")
    s = activate_reward(session, "alice", RewardKind.LETTER_BAN).session
    assert s.bans["bob"].frozen_letters == {"E": 1, "K": 1}
    assert s.rewards["alice"] == []

    s = _place_all(s, "alice", [(CENTER, "A"), ((7, 8), "K")], lexicon)
    s = confirm_move(s, "alice", lexicon=lexicon).session
    with pytest.raises(LetterFrozen):
        place_letter(s, "bob", (7, 9), "E", lexicon=lexicon)

    s = pass_turn(s, "bob").session
    assert s.bans["bob"].is_empty()


def test_joker_skips_the_next_redraw(session, lexicon):
    session.rewards["alice"] = [RewardKind.EXTRA_MOVE_JOKER]
    set_rack(session, "alice", "ATEEEEE")
    s = activate_reward(session, "alice", RewardKind.EXTRA_MOVE_JOKER).session
    s = _place_all(s, "alice", [(CENTER, "A"), ((7, 8), "T")], lexicon)
    result = confirm_move(s, "alice", lexicon=lexicon)

    assert result.session.racks["alice"] == {"E": 5}
    assert result.session.skip_next_draw["alice"] is False
    assert "draw_skipped" in [e.kind for e in result.events]


def test_collected_reward_is_held(session, lexicon):
    put_special(session, (7, 8), reward=RewardKind.WILDCARD_SIDE_BAN)
    set_rack(session, "alice", "AT")
    s = _place_all(session, "alice", [(CENTER, "A"), ((7, 8), "T")], lexicon)
    assert s.rewards["alice"] == [RewardKind.WILDCARD_SIDE_BAN]


# -------------------------------------------------
# Moving and reverting
# -------------------------------------------------

def test_move_pending_tile(session, lexicon):
    set_rack(session, "alice", "AT")
    s = _place_all(session, "alice", [(CENTER, "A"), ((7, 8), "T")], lexicon)
    s = move_letter(s, "alice", (7, 8), (8, 8)).session

    assert s.board[7][8].letter is None
    assert s.board[8][8].letter == "T"
    assert s.pending.last_position == (8, 8)
    assert s.pending.positions() == {CENTER, (8, 8)}
    assert s.current_turn == "alice"

    s = confirm_move(s, "alice", lexicon=lexicon).session
    # A plus T on the double-letter cell at (8, 8).
    assert s.player1_score == 3


def test_move_rules(session, lexicon):
    set_rack(session, "alice", "AT")
    s = _place_all(session, "alice", [(CENTER, "A"), ((7, 8), "T")], lexicon)
    with pytest.raises(FirstMoveMustBeCenter):
        move_letter(s, "alice", CENTER, (6, 7))
    with pytest.raises(NotAdjacent):
        move_letter(s, "alice", (7, 8), (7, 9))

    s = confirm_move(s, "alice", lexicon=lexicon).session
    with pytest.raises(TileNotMovable):
        move_letter(s, "bob", (7, 8), (8, 8))


def test_revert_returns_tiles_to_the_rack(session, lexicon):
    set_rack(session, "alice", "AT")
    s = _place_all(session, "alice", [(CENTER, "A"), ((7, 8), "T")], lexicon)
    s = revert_placement(s, "alice").session
    assert s.racks["alice"] == {"A": 1, "T": 1}
    assert s.pending.tiles == []
    assert s.board[7][7].letter is None
    with pytest.raises(NoPendingPlacement):
        revert_placement(s, "alice")


def test_revert_with_full_rack_returns_tiles_to_the_pool(session, lexicon):
    set_rack(session, "alice", "A")
    s = place_letter(session, "alice", CENTER, "A", lexicon=lexicon).session
    set_rack(s, "alice", "EEEEEEE")
    pool_a = s.letter_pool["A"]
    s = revert_placement(s, "alice").session
    assert s.racks["alice"] == {"E": 7}
    assert s.letter_pool["A"] == pool_a + 1
    assert pool_invariant_total(s) == TOTAL_TILES


# -------------------------------------------------
# Pass and surrender
# -------------------------------------------------

def test_third_pass_is_rejected(session):
    s = session
    for player in ("alice", "bob", "alice", "bob"):
        s = pass_turn(s, player).session
    assert (s.player1_pass_count, s.player2_pass_count) == (2, 2)

    before = s.model_dump()
    with pytest.raises(PassLimitExceeded):
        pass_turn(s, "alice")
    assert s.model_dump() == before


def test_pass_takes_back_pending_tiles(session, lexicon):
    set_rack(session, "alice", "A")
    s = place_letter(session, "alice", CENTER, "A", lexicon=lexicon).session
    s = pass_turn(s, "alice").session
    assert s.board[7][7].letter is None
    assert s.racks["alice"].get("A", 0) >= 1
    assert s.current_turn == "bob"
    assert pool_invariant_total(s) == TOTAL_TILES


def test_surrender_out_of_turn(session):
    session.player2_score = 40
    result = surrender(session, "bob")
    s = result.session
    assert s.status == SessionStatus.FINISHED
    assert (s.winner, s.loser) == ("alice", "bob")
    assert s.player2_score == 0
    assert s.finish_reason == FinishReason.SURRENDER
    assert phase(s) == GamePhase.FINISHED

    with pytest.raises(GameFinished):
        pass_turn(s, "alice")
    with pytest.raises(GameFinished):
        surrender(s, "alice")


# -------------------------------------------------
# Finishing
# -------------------------------------------------

def test_timeout_on_empty_board_loses_the_turn_holder(session):
    assert resolve_timeout(session, after(120)).session is session

    s = resolve_timeout(session, after(121)).session
    assert s.status == SessionStatus.FINISHED
    assert (s.winner, s.loser) == ("bob", "alice")
    assert s.finish_reason == FinishReason.TIMEOUT


def test_timeout_ignores_unconfirmed_tiles(session, lexicon):
    set_rack(session, "alice", "A")
    s = place_letter(session, "alice", CENTER, "A", lexicon=lexicon).session
    s = resolve_timeout(s, after(500)).session
    assert s.loser == "alice"
    assert s.board[7][7].letter is None
    assert s.racks["alice"] == {"A": 1}


def test_timeout_after_play_is_decided_by_score(session):
    lay_word(session, CENTER, "AT")
    session.player1_score = 5
    session.player2_score = 3
    s = resolve_timeout(session, after(121)).session
    assert (s.winner, s.loser) == ("alice", "bob")
    assert s.finish_reason == FinishReason.TIMEOUT


def test_equal_scores_are_a_draw(session):
    session.player1_score = session.player2_score = 7
    s = finish_by_score(session).session
    assert s.status == SessionStatus.FINISHED
    assert s.winner is None and s.loser is None
    with pytest.raises(GameFinished):
        finish_by_score(s)


def test_tile_total_is_constant_through_a_game(lexicon):
    s = make_session(empty_racks=False, seed=7)
    assert pool_invariant_total(s) == TOTAL_TILES

    set_rack(s, "bob", "")
    set_rack(s, "alice", "KALEM")
    s = _place_all(s, "alice", [((7, 7 + i), symbol) for i, symbol in enumerate("KALEM")], lexicon)
    assert pool_invariant_total(s) == TOTAL_TILES
    s = revert_placement(s, "alice").session
    assert pool_invariant_total(s) == TOTAL_TILES
    s = pass_turn(s, "alice").session
    assert pool_invariant_total(s) == TOTAL_TILES
    s = pass_turn(s, "bob").session
    assert pool_invariant_total(s) == TOTAL_TILES
    s = surrender(s, "alice").session
    assert pool_invariant_total(s) == TOTAL_TILES
