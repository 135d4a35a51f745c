from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import JSONResponse
import logging

from stores import (
	get_game_store,
	PlayerNotFound,
	PlayerAlreadyExists,
)
from models import CreateProfileRequest
from utils.validation import is_valid_name

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/create_profile")
async def create_profile(req: CreateProfileRequest, game_store = Depends(get_game_store)):
	"""Create the stats profile for a player. Identity itself is managed elsewhere."""
	if not is_valid_name(req.username):
		raise HTTPException(status_code=400, detail="Invalid username format. (Use only letters, numbers, spaces, and .'-`’· characters.)")

	try:
		profile = await game_store.create_user_profile(req.uid, req.username)
	except PlayerAlreadyExists:
		logger.warning(f"Attempt to create profile with existing uid: {req.uid}")
		return JSONResponse({"error": "Profile already exists"}, status_code=409)
	except Exception as e:
		logger.error(f"Failed to create profile: {e}", exc_info=True)
		return JSONResponse({"error": str(e)}, status_code=500)

	return JSONResponse(profile.model_dump(by_alias=True, mode="json"), status_code=201)


@router.get("/api/profile")
async def get_profile(uid: str, game_store = Depends(get_game_store)):
	try:
		profile = await game_store.read_user_profile(uid)
	except PlayerNotFound:
		raise HTTPException(status_code=404, detail="Player not found")
	return JSONResponse(profile.model_dump(by_alias=True, mode="json"))
