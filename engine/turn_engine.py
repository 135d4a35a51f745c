"""
Turn engine: every player action as a pure function of the session.

Each action takes the current `GameSession`, validates it against the rules
and returns an `ActionResult` holding a *new* session plus the events that
happened. The input is never mutated, so a rejected action (any
`RuleViolation`) leaves the caller's state exactly as it was.

Random choices (draws, mine effects, reward targets) come from
`session_rng`, which is derived from the session's persisted seed and
version. Any process replaying the same action on the same stored version
makes the same choices.

Callers are expected to run `resolve_timeout` before any other action, so
that an expired game is finished rather than played on.
"""
import logging
import random
from datetime import datetime
from typing import NamedTuple, Optional

from models.domain_models import (
    FinishReason,
    GameEvent,
    GamePhase,
    GameSession,
    MineKind,
    PendingPlacement,
    PlacedTile,
    RewardKind,
    SessionStatus,
)
from utils import ensure_utc, turkish_upper
from .board import Board
from .constants import ALPHABET, CENTER, MAX_PASSES, RACK_SIZE, WILDCARD
from .effects import activate_reward as _activate_reward
from .effects import collect_reward, lift_bans, trigger_mine
from .exceptions import (
    FirstMoveMustBeCenter,
    GameFinished,
    CellBanned,
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
)
from .letter_pool import LetterPool, add_to_rack, rack_size, take_from_rack
from .scoring import apply_score_modifiers, score_words

logger = logging.getLogger(__name__)


class ActionResult(NamedTuple):
    session: GameSession
    events: list


def session_rng(session: GameSession) -> random.Random:
    """Random source for the next transition of `session`."""
    return random.Random(f"{session.seed}:{session.version}")


# -------------------------------------------------
# Session setup
# -------------------------------------------------

def new_session(
    game_id: str,
    player1: str,
    player2: str,
    *,
    duration_class: str,
    duration_seconds: int,
    now: datetime,
    seed: int,
) -> GameSession:
    """Build a fresh, active session.

    The starting player is a coin flip, both racks are dealt seven tiles with
    the vowel rule, and the mines and rewards are scattered over the board.
    """
    now = ensure_utc(now)
    rng = random.Random(seed)
    board = Board.empty()
    board.place_specials(rng)
    pool = LetterPool.initial()
    racks = {player1: {}, player2: {}}
    for player in (player1, player2):
        pool.refill_rack(racks[player], rng)

    return GameSession(
        id=game_id,
        player1=player1,
        player2=player2,
        current_turn=rng.choice((player1, player2)),
        duration_class=duration_class,
        duration_seconds=duration_seconds,
        start_time=now,
        created_at=now,
        updated_at=now,
        board=board.grid,
        letter_pool=pool.counts,
        racks=racks,
        seed=seed,
    )


# -------------------------------------------------
# Read-side helpers
# -------------------------------------------------

def committed_letter_count(session: GameSession) -> int:
    """Letters on the board that belong to confirmed turns."""
    return Board(session.board).letter_count() - len(session.pending.tiles)


def phase(session: GameSession) -> GamePhase:
    if session.status == SessionStatus.FINISHED:
        return GamePhase.FINISHED
    if committed_letter_count(session) == 0:
        return GamePhase.WAITING_FIRST_MOVE
    return GamePhase.IN_PROGRESS


def elapsed_seconds(session: GameSession, now: datetime) -> float:
    return (ensure_utc(now) - ensure_utc(session.start_time)).total_seconds()


def is_expired(session: GameSession, now: datetime) -> bool:
    return elapsed_seconds(session, now) > session.duration_seconds


def remaining_seconds(session: GameSession, now: datetime) -> int:
    return max(0, int(session.duration_seconds - elapsed_seconds(session, now)))


def pool_invariant_total(session: GameSession) -> int:
    """Pool + both racks + board letters. Constant for the life of a game."""
    return (
        LetterPool(session.letter_pool).total()
        + sum(rack_size(rack) for rack in session.racks.values())
        + Board(session.board).letter_count()
    )


# -------------------------------------------------
# Internals
# -------------------------------------------------

def _begin(session: GameSession, player: str) -> GameSession:
    if session.status == SessionStatus.FINISHED:
        raise GameFinished(f"Game {session.id} is finished")
    if player not in session.players:
        raise NotAPlayer(f"{player} is not playing game {session.id}")
    return session.model_copy(deep=True)


def _require_turn(session: GameSession, player: str) -> None:
    if session.current_turn != player:
        raise NotYourTurn(f"It is {session.current_turn}'s turn")


def _take_back_pending(session: GameSession) -> int:
    """Lift every unconfirmed tile off the board.

    Tiles go back to the owner's rack while it has room, and to the pool
    otherwise (the rack may already be full after loseLetterSet).
    """
    board = Board(session.board)
    pool = LetterPool(session.letter_pool)
    rack = session.racks.setdefault(session.current_turn, {})
    for placed in session.pending.tiles:
        board.clear_letter((placed.row, placed.col))
        if rack_size(rack) < RACK_SIZE:
            add_to_rack(rack, {placed.symbol: 1})
        else:
            pool.release({placed.symbol: 1})
    count = len(session.pending.tiles)
    session.pending.tiles = []
    session.pending.last_position = None
    return count


def _end_turn(session: GameSession, player: str, rng: random.Random, events: list) -> None:
    """Shared tail of confirm and pass: lift bans, replenish, hand over the turn."""
    lift_bans(session, player)
    session.pending = PendingPlacement()

    if session.skip_next_draw.get(player):
        session.skip_next_draw[player] = False
        events.append(GameEvent(kind="draw_skipped", player=player))
    else:
        drawn = LetterPool(session.letter_pool).refill_rack(session.racks.setdefault(player, {}), rng)
        if drawn:
            events.append(GameEvent(kind="letters_drawn", player=player, data={"count": sum(drawn.values())}))

    session.current_turn = session.opponent_of(player)
    events.append(GameEvent(kind="turn_switched", player=session.current_turn))


def _finish(session: GameSession, winner: Optional[str], loser: Optional[str], reason: FinishReason, events: list) -> None:
    _take_back_pending(session)
    session.pending = PendingPlacement()
    session.status = SessionStatus.FINISHED
    session.winner = winner
    session.loser = loser
    session.finish_reason = reason
    events.append(GameEvent(kind="game_finished", data={"winner": winner, "loser": loser, "reason": reason.value}))
    logger.info(f"Game {session.id} finished ({reason.value}); winner={winner} loser={loser}")


# -------------------------------------------------
# Actions
# -------------------------------------------------

def place_letter(
    session: GameSession,
    player: str,
    pos,
    symbol: str,
    *,
    lexicon,
    as_letter: Optional[str] = None,
) -> ActionResult:
    """Put one rack tile on the board as part of the current turn.

    A wildcard (`*`) needs `as_letter`, the letter it stands for; the tile
    then shows that letter but scores nothing. Mines and rewards under the
    tile are consumed here.

    Raises:
        NotYourTurn, LetterNotInRack, InvalidLetter, CellBanned, LetterFrozen,
        plus the placement violations raised by `Board.place_letter`.
    """
    s = _begin(session, player)
    _require_turn(s, player)
    pos = (int(pos[0]), int(pos[1]))

    rack = s.racks.setdefault(player, {})
    if rack.get(symbol, 0) <= 0:
        raise LetterNotInRack(f"{symbol} is not in {player}'s rack")

    bans = s.bans.get(player)
    if bans is not None:
        if pos in bans.cells:
            raise CellBanned(f"{pos} is banned for {player} this turn")
        if rack[symbol] <= bans.frozen_letters.get(symbol, 0):
            raise LetterFrozen(f"{symbol} is frozen for {player} this turn")

    if symbol == WILDCARD:
        letter = turkish_upper(as_letter or "")
        if letter not in ALPHABET:
            raise InvalidLetter("A wildcard needs the letter it stands for")
    elif symbol in ALPHABET:
        letter = symbol
    else:
        raise InvalidLetter(f"Unknown letter {symbol!r}")

    board = Board(s.board)
    result = board.place_letter(pos, letter, lexicon, is_wildcard=symbol == WILDCARD)
    take_from_rack(rack, symbol)
    s.pending.tiles.append(PlacedTile(row=pos[0], col=pos[1], symbol=symbol))
    s.pending.last_position = pos

    events = [GameEvent(
        kind="letter_placed",
        player=player,
        data={"row": pos[0], "col": pos[1], "letter": letter, "words": sorted(result.words)},
    )]
    rng = session_rng(s)
    if result.mine is not None:
        trigger_mine(s, player, result.mine, pos, rng, events)
    if result.reward is not None:
        collect_reward(s, player, result.reward, events)
    return ActionResult(s, events)


def move_letter(session: GameSession, player: str, src, dst) -> ActionResult:
    """Slide one of this turn's tiles to an empty neighbouring cell.

    Only unconfirmed tiles move; the turn is not consumed and nothing is
    scored. Specials on the target tile stay in place.

    Raises:
        NotYourTurn, TileNotMovable, CellBanned, FirstMoveMustBeCenter,
        NotAdjacent, plus the move violations raised by `Board.move_letter`.
    """
    s = _begin(session, player)
    _require_turn(s, player)
    src = (int(src[0]), int(src[1]))
    dst = (int(dst[0]), int(dst[1]))

    board = Board(s.board)
    if board.letter_at(src) and src not in s.pending.positions():
        raise TileNotMovable(f"The letter on {src} was confirmed in an earlier turn")
    bans = s.bans.get(player)
    if bans is not None and dst in bans.cells:
        raise CellBanned(f"{dst} is banned for {player} this turn")
    if src == CENTER and board.letter_at(src) and committed_letter_count(s) == 0:
        raise FirstMoveMustBeCenter(f"The first word must keep a letter on {CENTER}")

    board.move_letter(src, dst)
    if board.letter_count() > 1 and not board.has_neighbour(dst):
        raise NotAdjacent(f"{dst} does not touch any letter")

    for placed in s.pending.tiles:
        if (placed.row, placed.col) == src:
            placed.row, placed.col = dst
    if s.pending.last_position == src:
        s.pending.last_position = dst

    events = [GameEvent(
        kind="letter_moved",
        player=player,
        data={"from": list(src), "to": list(dst)},
    )]
    return ActionResult(s, events)


def revert_placement(session: GameSession, player: str) -> ActionResult:
    """Take this turn's tiles back. Consumed specials stay consumed.

    Raises:
        NotYourTurn, NoPendingPlacement
    """
    s = _begin(session, player)
    _require_turn(s, player)
    if not s.pending.tiles:
        raise NoPendingPlacement("Nothing to take back")
    count = _take_back_pending(s)
    return ActionResult(s, [GameEvent(kind="placement_reverted", player=player, data={"count": count})])


def confirm_move(session: GameSession, player: str, *, lexicon) -> ActionResult:
    """Score the words through the last placed tile and pass the turn.

    Raises:
        NotYourTurn, NoPendingPlacement
        NoWordFormed: If no run of two or more letters passes through the tile.
        InvalidWord: If runs exist but none of their substrings is a word.
    """
    s = _begin(session, player)
    _require_turn(s, player)
    if not s.pending.tiles or s.pending.last_position is None:
        raise NoPendingPlacement("Place a letter before confirming")

    board = Board(s.board)
    last = s.pending.last_position
    words = board.candidate_word_positions(last, lexicon)
    if not words:
        runs = board.full_runs(last)
        if runs:
            raise InvalidWord(runs)
        raise NoWordFormed(f"No word passes through {last}")
    for word in words:
        if word not in lexicon:
            raise InvalidWord([word])

    mines = list(s.pending.deferred_mines)
    block = MineKind.BLOCK_MULTIPLIERS in mines
    raw = score_words(board, words, block_multipliers=block)
    outcome = apply_score_modifiers(raw, mines)

    opponent = s.opponent_of(player)
    s.add_score(player, outcome.gained)
    if outcome.transferred:
        s.add_score(opponent, outcome.transferred)

    events = [GameEvent(
        kind="move_confirmed",
        player=player,
        data={
            "words": sorted(words),
            "raw": outcome.raw,
            "gained": outcome.gained,
            "transferred": outcome.transferred,
            "mines": [m.value for m in mines],
        },
    )]
    _end_turn(s, player, session_rng(s), events)
    return ActionResult(s, events)


def pass_turn(session: GameSession, player: str) -> ActionResult:
    """Give up the turn. Each player may pass at most MAX_PASSES times.

    Raises:
        NotYourTurn, PassLimitExceeded
    """
    s = _begin(session, player)
    _require_turn(s, player)
    if s.pass_count_of(player) >= MAX_PASSES:
        raise PassLimitExceeded(f"{player} already passed {MAX_PASSES} times")

    _take_back_pending(s)
    s.increment_pass_count(player)
    events = [GameEvent(kind="turn_passed", player=player, data={"passCount": s.pass_count_of(player)})]
    _end_turn(s, player, session_rng(s), events)
    return ActionResult(s, events)


def surrender(session: GameSession, player: str) -> ActionResult:
    """Concede at any time; the surrendering player's score drops to zero."""
    s = _begin(session, player)
    s.set_score(player, 0)
    events = [GameEvent(kind="surrendered", player=player)]
    _finish(s, s.opponent_of(player), player, FinishReason.SURRENDER, events)
    return ActionResult(s, events)


def activate_reward(session: GameSession, player: str, kind: RewardKind) -> ActionResult:
    """Spend a held reward during the holder's own turn.

    Raises:
        NotYourTurn, RewardNotHeld
    """
    s = _begin(session, player)
    _require_turn(s, player)
    events: list = []
    _activate_reward(s, player, RewardKind(kind), session_rng(s), events)
    return ActionResult(s, events)


def finish_by_score(session: GameSession, reason: FinishReason = FinishReason.SCORE) -> ActionResult:
    """End the game with the higher score winning; equal scores are a draw."""
    if session.status == SessionStatus.FINISHED:
        raise GameFinished(f"Game {session.id} is finished")
    s = session.model_copy(deep=True)
    events: list = []
    if s.player1_score > s.player2_score:
        winner, loser = s.player1, s.player2
    elif s.player2_score > s.player1_score:
        winner, loser = s.player2, s.player1
    else:
        winner = loser = None
    _finish(s, winner, loser, reason, events)
    return ActionResult(s, events)


def resolve_timeout(session: GameSession, now: datetime) -> ActionResult:
    """Finish `session` if its clock ran out; otherwise return it unchanged.

    Any reader may call this; the decision depends only on the persisted
    start time, so every process reaches the same outcome. With no
    confirmed letters on the board the player holding the turn loses;
    otherwise the scores decide.
    """
    if session.status == SessionStatus.FINISHED or not is_expired(session, now):
        return ActionResult(session, [])

    if committed_letter_count(session) == 0:
        s = session.model_copy(deep=True)
        events: list = []
        loser = s.current_turn
        _finish(s, s.opponent_of(loser), loser, FinishReason.TIMEOUT, events)
        return ActionResult(s, events)

    return finish_by_score(session, FinishReason.TIMEOUT)
