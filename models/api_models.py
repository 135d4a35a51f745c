"""Pydantic request/response models for the FastAPI endpoints.

Keep transport concerns (validation, docs) here and keep business/domain
types in `models.domain_models`.
"""
from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any

from .domain_models import RewardKind


class BaseModelPlus(BaseModel):
	uid: str
	game_id: str | None = None


class GameActionRequest(BaseModelPlus):
	game_id: str


class CreateProfileRequest(BaseModel):
	uid: str
	username: str


class FindMatchRequest(BaseModel):
	uid: str
	duration_class: str


class PlaceLetterRequest(GameActionRequest):
	row: int
	col: int
	symbol: str
	# letter chosen for a wildcard tile; ignored for ordinary letters
	as_letter: str | None = None


class MoveLetterRequest(GameActionRequest):
	from_row: int
	from_col: int
	to_row: int
	to_col: int


class ActivateRewardRequest(GameActionRequest):
	kind: RewardKind


class FindMatchResponse(BaseModel):
	game_id: str | None = None
	queued: bool = False


class ActionResponse(BaseModel):
	game: dict[str, Any]
	events: list[dict[str, Any]] = Field(default_factory=list)


class GameListResponse(BaseModel):
	games: list[dict[str, Any]]


__all__ = [
	"BaseModelPlus",
	"GameActionRequest",
	"CreateProfileRequest",
	"FindMatchRequest",
	"PlaceLetterRequest",
	"MoveLetterRequest",
	"ActivateRewardRequest",
	"FindMatchResponse",
	"ActionResponse",
	"GameListResponse",
]
