"""Shared fixtures: an in-memory SQLite store seeded with two leagues."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from elevation_bonus.crud import CreateData
from elevation_bonus.domain.bonus_rules import BonusCatalog
from elevation_bonus.models.schema_models import ParticipantSchema
from elevation_bonus.participant_lock_manager import ParticipantLockManager
from elevation_bonus.services.bonus_service import BonusService
from tests.helpers import TickingClock

PARTICIPANTS = [
    ParticipantSchema(participant_id="alice", display_name="Alice Martin", league_id="alps"),
    ParticipantSchema(participant_id="bruno", display_name="Bruno Petit", league_id="alps"),
    ParticipantSchema(participant_id="chloe", display_name="Chloe Durand", league_id="alps"),
    ParticipantSchema(participant_id="dario", display_name="Dario Rossi", league_id="pyrenees"),
]


@pytest.fixture
def catalog() -> BonusCatalog:
    return BonusCatalog()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await CreateData.create_table(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(class_=AsyncSession, expire_on_commit=False, bind=engine)


@pytest.fixture
async def seeded_participants(session_factory) -> list[ParticipantSchema]:
    for participant in PARTICIPANTS:
        async with session_factory() as session:
            await CreateData.create_participant_data(participant, session)
    return PARTICIPANTS


@pytest.fixture
def lock_manager() -> ParticipantLockManager:
    return ParticipantLockManager(timeout=0.5)


@pytest.fixture
def bonus_service(session_factory, catalog, lock_manager, seeded_participants) -> BonusService:
    return BonusService(session_factory, catalog, lock_manager, clock=TickingClock())
