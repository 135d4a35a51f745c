from datetime import timedelta
from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import JSONResponse
import logging

from engine import (
	GameFinished,
	InvalidDurationClass,
	NotYourTurn,
	RuleViolation,
	get_lexicon,
	activate_reward,
	confirm_move,
	move_letter,
	pass_turn,
	place_letter,
	revert_placement,
	surrender,
)
from models import (
	ActionResponse,
	ActivateRewardRequest,
	FindMatchRequest,
	FindMatchResponse,
	GameActionRequest,
	GameListResponse,
	MoveLetterRequest,
	PlaceLetterRequest,
)
from stores import (
	get_game_store,
	GameNotFound,
	StaleWrite,
	StoreError,
	StoreTimeout,
)
from workers.tasks import resolve_timeout as resolve_timeout_task
from . import games_helpers

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_http(exc: Exception, game_id: str | None = None) -> HTTPException:
	"""Map engine/store exceptions to HTTP errors."""
	if isinstance(exc, GameNotFound):
		return HTTPException(status_code=404, detail="Game not found")
	if isinstance(exc, GameFinished):
		return HTTPException(status_code=409, detail={"error": "Game is finished", "retryable": False})
	if isinstance(exc, NotYourTurn):
		return HTTPException(status_code=409, detail={"error": str(exc), "retryable": False})
	if isinstance(exc, RuleViolation):
		return HTTPException(status_code=400, detail={"error": str(exc), "rule": type(exc).__name__, "retryable": False})
	if isinstance(exc, (StaleWrite, StoreTimeout)):
		return HTTPException(status_code=409, detail={"error": str(exc), "retryable": True})
	logger.error(f"Unexpected failure on game {game_id}: {exc}", exc_info=exc)
	return HTTPException(status_code=500, detail="Internal error")


def _schedule_timeout(session) -> None:
	"""Queue the celery task that finishes the game when its clock runs out."""
	eta = session.start_time + timedelta(seconds=session.duration_seconds + 1)
	try:
		resolve_timeout_task.apply_async(args=[session.id], eta=eta, ignore_result=True)
		logger.info(f"Scheduled resolve_timeout for {session.id} at {eta}")
	except Exception as exc:
		# The periodic sweep still catches it.
		logger.error(f"Failed to schedule timeout for {session.id}: {exc}")


async def _run(store, uid: str, game_id: str, action):
	try:
		result = await games_helpers.run_action(store, game_id, action)
	except (RuleViolation, GameFinished) as exc:
		logger.warning(f"Rejected action by {uid} on game {game_id}: {type(exc).__name__}: {exc}")
		raise _to_http(exc, game_id)
	except StoreError as exc:
		raise _to_http(exc, game_id)
	return ActionResponse(
		game=games_helpers.censor_game_state(result.session, uid),
		events=games_helpers.events_to_dicts(result.events),
	)


# --- Matchmaking ---

@router.post("/api/find_match")
async def find_match(req: FindMatchRequest, store = Depends(get_game_store)):
	try:
		session = await games_helpers.find_match(store, req.uid, req.duration_class)
	except InvalidDurationClass as exc:
		raise HTTPException(status_code=400, detail=str(exc))
	except Exception as exc:
		raise _to_http(exc)

	if session is None:
		return JSONResponse(status_code=202, content=FindMatchResponse(queued=True).model_dump())

	_schedule_timeout(session)
	return JSONResponse(status_code=201, content=FindMatchResponse(game_id=session.id).model_dump())


@router.post("/api/cancel_match")
async def cancel_match(req: FindMatchRequest, store = Depends(get_game_store)):
	try:
		return await games_helpers.cancel_match(store, req.uid, req.duration_class)
	except Exception as exc:
		raise _to_http(exc)


@router.get("/api/poll_match")
async def poll_match(uid: str, store = Depends(get_game_store)):
	try:
		session = await games_helpers.poll_match(store, uid)
	except Exception as exc:
		raise _to_http(exc)
	return {"game_id": session.id if session else None}


# --- Reads ---

@router.get("/api/game_state")
async def get_game_state(game_id: str, uid: str | None = None, store = Depends(get_game_store)):
	try:
		session = await games_helpers.resolve_timeout(store, game_id)
	except Exception as exc:
		raise _to_http(exc, game_id)
	return JSONResponse(content=games_helpers.censor_game_state(session, uid))


@router.get("/api/my_games")
async def my_games(uid: str, active_only: bool = False, store = Depends(get_game_store)):
	try:
		games = await games_helpers.list_games(store, uid, active_only=active_only)
	except Exception as exc:
		raise _to_http(exc)
	return GameListResponse(games=games)


# --- Turn actions ---

@router.post("/api/place_letter")
async def api_place_letter(req: PlaceLetterRequest, store = Depends(get_game_store), lexicon = Depends(get_lexicon)):
	return await _run(store, req.uid, req.game_id, lambda s: place_letter(
		s, req.uid, (req.row, req.col), req.symbol, lexicon=lexicon, as_letter=req.as_letter,
	))


@router.post("/api/move_letter")
async def api_move_letter(req: MoveLetterRequest, store = Depends(get_game_store)):
	return await _run(store, req.uid, req.game_id, lambda s: move_letter(
		s, req.uid, (req.from_row, req.from_col), (req.to_row, req.to_col),
	))


@router.post("/api/revert_placement")
async def api_revert_placement(req: GameActionRequest, store = Depends(get_game_store)):
	return await _run(store, req.uid, req.game_id, lambda s: revert_placement(s, req.uid))


@router.post("/api/confirm_move")
async def api_confirm_move(req: GameActionRequest, store = Depends(get_game_store), lexicon = Depends(get_lexicon)):
	return await _run(store, req.uid, req.game_id, lambda s: confirm_move(s, req.uid, lexicon=lexicon))


@router.post("/api/pass")
async def api_pass(req: GameActionRequest, store = Depends(get_game_store)):
	return await _run(store, req.uid, req.game_id, lambda s: pass_turn(s, req.uid))


@router.post("/api/surrender")
async def api_surrender(req: GameActionRequest, store = Depends(get_game_store)):
	return await _run(store, req.uid, req.game_id, lambda s: surrender(s, req.uid))


@router.post("/api/activate_reward")
async def api_activate_reward(req: ActivateRewardRequest, store = Depends(get_game_store)):
	return await _run(store, req.uid, req.game_id, lambda s: activate_reward(s, req.uid, req.kind))


@router.post("/api/resolve_timeout")
async def api_resolve_timeout(req: GameActionRequest, store = Depends(get_game_store)):
	try:
		session = await games_helpers.resolve_timeout(store, req.game_id)
	except Exception as exc:
		raise _to_http(exc, req.game_id)
	return JSONResponse(content=games_helpers.censor_game_state(session, req.uid))
