import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from apscheduler.schedulers.background import BackgroundScheduler
from pytz import timezone

import config
from routes import games_router, players_router
from routes import games_helpers
from stores import init_stores_async, get_game_store, close_stores

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# --- FastAPI setup ---
app = FastAPI(title="Kelime Mayinlari")

# --- Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["POST", "GET"],
    allow_headers=["*"],
)

# --- Register routes ---
app.include_router(games_router, prefix="/games")
app.include_router(players_router, prefix="/players")


def sweep_expired_sessions():
    """Finish every game whose clock has run out. Runs on the scheduler thread."""
    try:
        finished = asyncio.run(games_helpers.sweep_expired_sessions(get_game_store()))
    except Exception as exc:
        logger.error(f"Expired-session sweep failed: {exc}", exc_info=True)
        return
    if finished:
        logger.info(f"Expired-session sweep finished {finished} game(s)")


# --- Scheduler setup ---
scheduler = BackgroundScheduler(timezone=timezone(config.GAME_TIMEZONE))
scheduler.add_job(sweep_expired_sessions, trigger="interval", seconds=config.TIMEOUT_SWEEP_SECONDS)


@app.on_event("startup")
async def startup_event():
    await init_stores_async(config.DB_PATH)
    scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    if scheduler.running:
        scheduler.shutdown()
    await close_stores()
