import logging
from contextlib import asynccontextmanager
from datetime import date

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from redis.asyncio import Redis

from elevation_bonus.crud import CreateData
from elevation_bonus.database_engine import engine
from elevation_bonus.db import Session
from elevation_bonus.domain.bonus_rules import BonusCatalog
from elevation_bonus.domain.round_calendar import RoundCalendar
from elevation_bonus.event_publisher import BonusEventPublisher
from elevation_bonus.load_secrets import (
    admin_password,
    bonus_lock_timeout,
    competition_start_date,
    redis_host,
    redis_port,
    round_duration_days,
    rounds_per_season,
)
from elevation_bonus.participant_lock_manager import ParticipantLockManager
from elevation_bonus.routers.bonus import register_bonus_routes
from elevation_bonus.services.bonus_service import BonusService

scheduler = AsyncIOScheduler()
logging.basicConfig(level=logging.INFO)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def build_calendar() -> RoundCalendar | None:
    if not competition_start_date:
        logging.warning("COMPETITION_START_DATE is not set, round context flags must come from requests")
        return None
    return RoundCalendar(
        date.fromisoformat(competition_start_date),
        round_duration_days=round_duration_days,
        rounds_per_season=rounds_per_season,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and wire the bonus service.
    This function is called to start the server.
    """
    await CreateData.create_table(engine)

    redis = Redis(host=redis_host, port=redis_port, decode_responses=True) if redis_host else None
    lock_manager = ParticipantLockManager(timeout=bonus_lock_timeout)
    app.state.admin_password = admin_password
    app.state.bonus_service = BonusService(
        Session,
        BonusCatalog(),
        lock_manager,
        calendar=build_calendar(),
        publisher=BonusEventPublisher(redis),
    )

    # Locks of participants that stopped playing are never reused.
    scheduler.add_job(
        lock_manager.cleanup,
        "interval",
        minutes=30,
    )
    scheduler.start()
    try:
        yield
    finally:
        scheduler.shutdown()
        if redis is not None:
            await redis.aclose()
        await engine.dispose()
        logging.info("Stop Server")


app = FastAPI(lifespan=lifespan)
register_bonus_routes(app)
