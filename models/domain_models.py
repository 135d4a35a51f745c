"""Domain-level models used by the engine, routes and stores.

These pydantic models are the strict persistence schema of a game. Field names
serialise to camelCase (`player1Score`, `currentTurn`, `startTime`, ...), which
is the durable contract every collaborator reading the store relies on.
Older, loosely-typed documents are upgraded by `stores.migrations` before they
reach these models.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


SCHEMA_VERSION = 2

Position = Tuple[int, int]


class Multiplier(str, Enum):
	NONE = "none"
	DOUBLE_LETTER = "doubleLetter"
	TRIPLE_LETTER = "tripleLetter"
	DOUBLE_WORD = "doubleWord"
	TRIPLE_WORD = "tripleWord"


class MineKind(str, Enum):
	SCORE_SPLIT = "scoreSplit"
	SCORE_TRANSFER = "scoreTransfer"
	LOSE_LETTER_SET = "loseLetterSet"
	BLOCK_MULTIPLIERS = "blockMultipliers"
	CANCEL_WORD = "cancelWord"
	REGION_BAN = "regionBan"


class RewardKind(str, Enum):
	EXTRA_MOVE_JOKER = "extraMoveJoker"
	LETTER_BAN = "letterBan"
	WILDCARD_SIDE_BAN = "wildcardSideBan"


class SessionStatus(str, Enum):
	ACTIVE = "active"
	FINISHED = "finished"


class FinishReason(str, Enum):
	SURRENDER = "surrender"
	TIMEOUT = "timeout"
	SCORE = "score"


class GamePhase(str, Enum):
	WAITING_FIRST_MOVE = "waitingFirstMove"
	IN_PROGRESS = "inProgress"
	FINISHED = "finished"


class DomainModel(BaseModel):
	model_config = ConfigDict(
		alias_generator=to_camel,
		populate_by_name=True,
		extra="forbid",
		use_enum_values=False,
	)


class Tile(DomainModel):
	letter: Optional[str] = None
	multiplier: Multiplier = Multiplier.NONE
	mine: Optional[MineKind] = None
	reward: Optional[RewardKind] = None
	is_wildcard: bool = False


class PlacedTile(DomainModel):
	"""A letter put on the board during the current, unconfirmed turn."""
	row: int
	col: int
	symbol: str  # rack symbol it came from ("*" for a wildcard)


class PendingPlacement(DomainModel):
	tiles: list[PlacedTile] = Field(default_factory=list)
	last_position: Optional[Position] = None
	deferred_mines: list[MineKind] = Field(default_factory=list)

	def positions(self) -> set[Position]:
		return {(t.row, t.col) for t in self.tiles}


class PlayerBans(DomainModel):
	"""Constraints placed on a player by the opponent, lifted after their next turn."""
	cells: list[Position] = Field(default_factory=list)
	frozen_letters: dict[str, int] = Field(default_factory=dict)

	def is_empty(self) -> bool:
		return not self.cells and not self.frozen_letters


class GameSession(DomainModel):
	schema_version: int = SCHEMA_VERSION
	id: str
	player1: str
	player2: str
	current_turn: str
	duration_class: str
	duration_seconds: int
	start_time: datetime
	created_at: datetime
	updated_at: Optional[datetime] = None

	player1_score: int = 0
	player2_score: int = 0
	player1_pass_count: int = 0
	player2_pass_count: int = 0

	status: SessionStatus = SessionStatus.ACTIVE
	winner: Optional[str] = None
	loser: Optional[str] = None
	finish_reason: Optional[FinishReason] = None

	board: list[list[Tile]]
	letter_pool: dict[str, int]
	racks: dict[str, dict[str, int]]
	pending: PendingPlacement = Field(default_factory=PendingPlacement)
	rewards: dict[str, list[RewardKind]] = Field(default_factory=dict)
	bans: dict[str, PlayerBans] = Field(default_factory=dict)
	skip_next_draw: dict[str, bool] = Field(default_factory=dict)

	seed: int
	version: int = 0

	@property
	def players(self) -> tuple[str, str]:
		return (self.player1, self.player2)

	def opponent_of(self, player: str) -> str:
		return self.player2 if player == self.player1 else self.player1

	def score_of(self, player: str) -> int:
		return self.player1_score if player == self.player1 else self.player2_score

	def add_score(self, player: str, points: int) -> None:
		if player == self.player1:
			self.player1_score += points
		else:
			self.player2_score += points

	def set_score(self, player: str, points: int) -> None:
		if player == self.player1:
			self.player1_score = points
		else:
			self.player2_score = points

	def pass_count_of(self, player: str) -> int:
		return self.player1_pass_count if player == self.player1 else self.player2_pass_count

	def increment_pass_count(self, player: str) -> None:
		if player == self.player1:
			self.player1_pass_count += 1
		else:
			self.player2_pass_count += 1

	def bans_for(self, player: str) -> PlayerBans:
		return self.bans.setdefault(player, PlayerBans())


class GameEvent(DomainModel):
	"""Something the engine did that presentation may want to show."""
	kind: str
	player: Optional[str] = None
	data: dict[str, Any] = Field(default_factory=dict)


class MatchQueueEntry(DomainModel):
	id: str
	requesting_player: str
	duration_class: str
	enqueued_at: datetime


class UserProfile(DomainModel):
	uid: str
	username: str
	total_games: int = 0
	won_games: int = 0

	@computed_field
	@property
	def success_rate(self) -> float:
		if self.total_games <= 0:
			return 0.0
		return round(self.won_games / self.total_games * 100, 2)


__all__ = [
	"SCHEMA_VERSION",
	"Position",
	"Multiplier",
	"MineKind",
	"RewardKind",
	"SessionStatus",
	"FinishReason",
	"GamePhase",
	"Tile",
	"PlacedTile",
	"PendingPlacement",
	"PlayerBans",
	"GameSession",
	"GameEvent",
	"MatchQueueEntry",
	"UserProfile",
]
