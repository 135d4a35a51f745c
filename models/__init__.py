"""Data models used by the application.

Split into:
- `api_models`: Pydantic models used for request/response validation
- `domain_models`: the versioned persistence schema used by the engine and stores

Import submodules to make them available as `models.api_models`.
"""

from . import api_models, domain_models

from .api_models import (
	BaseModelPlus,
	GameActionRequest,
	CreateProfileRequest,
	FindMatchRequest,
	PlaceLetterRequest,
	MoveLetterRequest,
	ActivateRewardRequest,
	FindMatchResponse,
	ActionResponse,
	GameListResponse,
)

from .domain_models import (
	SCHEMA_VERSION,
	Multiplier,
	MineKind,
	RewardKind,
	SessionStatus,
	FinishReason,
	GamePhase,
	Tile,
	PlacedTile,
	PendingPlacement,
	PlayerBans,
	GameSession,
	GameEvent,
	MatchQueueEntry,
	UserProfile,
)

__all__ = [
	# submodules
	"api_models",
	"domain_models",
	# api models
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
	# domain models
	"SCHEMA_VERSION",
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
