"""FastAPI routers mounted by `main`: `/games` for play, `/players` for profiles."""

from .games import router as games_router
from .players import router as players_router

__all__ = [
	"games_router",
	"players_router",
]
