"""Mine and reward effects.

Immediate mines (regionBan, loseLetterSet) act on the spot. Score mines are
parked on the pending placement and resolved by the scorer at confirm.
Rewards go into the finder's hand and act only when activated.
"""
import logging
import random
from collections import Counter

from models.domain_models import GameEvent, MineKind, PlayerBans, RewardKind
from .constants import (
    BOARD_SIZE,
    IMMEDIATE_MINES,
    LEFT_HALF_COLUMNS,
    LETTER_BAN_COUNT,
    REGION_BAN_RADIUS,
    RIGHT_HALF_COLUMNS,
)
from .exceptions import RewardNotHeld
from .letter_pool import LetterPool

logger = logging.getLogger(__name__)


def _ban_cells(bans: PlayerBans, cells) -> None:
    known = set(bans.cells)
    for cell in cells:
        if cell not in known:
            bans.cells.append(cell)
            known.add(cell)


def region_cells(pos, radius: int = REGION_BAN_RADIUS) -> list:
    row, col = pos
    return [
        (r, c)
        for r in range(row - radius, row + radius + 1)
        for c in range(col - radius, col + radius + 1)
        if 0 <= r < BOARD_SIZE and 0 <= c < BOARD_SIZE
    ]


def trigger_mine(session, player: str, mine: MineKind, pos, rng: random.Random, events: list) -> None:
    """Resolve or defer the mine `player` just stepped on at `pos`."""
    events.append(GameEvent(kind="mine_triggered", player=player, data={"mine": mine.value, "row": pos[0], "col": pos[1]}))

    if mine not in IMMEDIATE_MINES:
        session.pending.deferred_mines.append(mine)
        return

    if mine == MineKind.REGION_BAN:
        opponent = session.opponent_of(player)
        _ban_cells(session.bans_for(opponent), region_cells(pos))
    elif mine == MineKind.LOSE_LETTER_SET:
        pool = LetterPool(session.letter_pool)
        rack = session.racks.setdefault(player, {})
        lost = {symbol for symbol, n in rack.items() if n > 0}
        pool.release(rack)
        rack.clear()
        # A fresh set avoids the symbols just lost; those only top up what the pool cannot cover
        drawn = pool.refill_rack(rack, rng, exclude=lost)
        drawn += pool.refill_rack(rack, rng)
        logger.info(f"Player {player} lost their letters in game {session.id}; redrew {sum(drawn.values())}")


def collect_reward(session, player: str, reward: RewardKind, events: list) -> None:
    session.rewards.setdefault(player, []).append(reward)
    events.append(GameEvent(kind="reward_collected", player=player, data={"reward": reward.value}))


def activate_reward(session, player: str, kind: RewardKind, rng: random.Random, events: list) -> None:
    """Spend one held reward of `kind`.

    Raises:
        RewardNotHeld: If `player` holds no reward of that kind.
    """
    held = session.rewards.get(player, [])
    if kind not in held:
        raise RewardNotHeld(f"{player} holds no {kind.value}")
    held.remove(kind)

    opponent = session.opponent_of(player)
    data = {"reward": kind.value}

    if kind == RewardKind.EXTRA_MOVE_JOKER:
        session.skip_next_draw[player] = True
    elif kind == RewardKind.LETTER_BAN:
        rack = Counter(session.racks.get(opponent, {}))
        tiles = sorted(rack.elements())
        frozen = Counter(rng.sample(tiles, min(LETTER_BAN_COUNT, len(tiles))))
        bans = session.bans_for(opponent)
        for symbol, n in frozen.items():
            bans.frozen_letters[symbol] = bans.frozen_letters.get(symbol, 0) + n
        data["frozen"] = sum(frozen.values())
    elif kind == RewardKind.WILDCARD_SIDE_BAN:
        left = rng.random() < 0.5
        columns = LEFT_HALF_COLUMNS if left else RIGHT_HALF_COLUMNS
        _ban_cells(session.bans_for(opponent), [(r, c) for r in range(BOARD_SIZE) for c in columns])
        data["side"] = "left" if left else "right"

    events.append(GameEvent(kind="reward_activated", player=player, data=data))


def lift_bans(session, player: str) -> None:
    """Drop every ban on `player`; called once their constrained turn is over."""
    if player in session.bans:
        session.bans[player] = PlayerBans()
