import logging
from datetime import datetime
from typing import Any, Iterable, List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from elevation_bonus.converter import DataConverter
from elevation_bonus.domain.errors import NotFound, StorageUnavailable
from elevation_bonus.models.schema_models import (
    ParticipantSchema,
    StockState,
    UsageRecordSchema,
    UsageStatus,
)
from elevation_bonus.models.schemas import Base, BonusUsage, Participant

data_converter = DataConverter()


class ReadData:
    @staticmethod
    async def read_participant(
        participant_id: str, session: AsyncSession, for_update: bool = False
    ) -> ParticipantSchema | None:
        """Read one participant with its stored bonus stock

        Args:
            participant_id (str): To identify the participant
            for_update (bool): Lock the row until the end of the transaction

        Returns:
            ParticipantSchema | None: Participant data, None if unknown
        """
        try:
            stmt = select(Participant).where(Participant.participant_id == participant_id)
            if for_update:
                stmt = stmt.with_for_update()
            result = await session.execute(stmt)
            result = result.scalars().first()

            if result is None:
                return None

            return ParticipantSchema.model_validate(result)
        except (SQLAlchemyError, OSError) as e:
            logging.error(f"Failed to read participant data: {e}")
            raise StorageUnavailable("Failed to read participant data") from e

    @staticmethod
    async def read_participants(
        session: AsyncSession, league_id: str | None = None, for_update: bool = False
    ) -> List[ParticipantSchema]:
        """Read participants, optionally restricted to one league

        Args:
            league_id (str | None): League to filter on, every league if None
            for_update (bool): Lock the rows until the end of the transaction

        Returns:
            List[ParticipantSchema]: Participants ordered by id
        """
        try:
            stmt = select(Participant).order_by(Participant.participant_id)
            if league_id is not None:
                stmt = stmt.where(Participant.league_id == league_id)
            if for_update:
                stmt = stmt.with_for_update()
            result = await session.execute(stmt)
            return [ParticipantSchema.model_validate(row) for row in result.scalars().all()]
        except (SQLAlchemyError, OSError) as e:
            logging.error(f"Failed to read participants data: {e}")
            raise StorageUnavailable("Failed to read participants data") from e

    @staticmethod
    async def read_usage(usage_id: UUID, session: AsyncSession, for_update: bool = False) -> UsageRecordSchema | None:
        """Read one usage record

        Args:
            usage_id (UUID): To identify the usage

        Returns:
            UsageRecordSchema | None: Usage record, None if unknown
        """
        try:
            stmt = select(BonusUsage).where(BonusUsage.usage_id == usage_id)
            if for_update:
                stmt = stmt.with_for_update()
            result = await session.execute(stmt)
            result = result.scalars().first()

            if result is None:
                return None

            return data_converter.convert_usage_row_to_schema(result)
        except (SQLAlchemyError, OSError) as e:
            logging.error(f"Failed to read usage data: {e}")
            raise StorageUnavailable("Failed to read usage data") from e

    @staticmethod
    async def read_usages(
        session: AsyncSession,
        participant_ids: Iterable[str] | None = None,
        round_number: int | None = None,
        status: UsageStatus | None = None,
    ) -> List[UsageRecordSchema]:
        """Read usage records in activation order

        Args:
            participant_ids (Iterable[str] | None): Owners to filter on
            round_number (int | None): Round to filter on
            status (UsageStatus | None): Status to filter on

        Returns:
            List[UsageRecordSchema]: Usage records ordered by creation time
        """
        try:
            stmt = select(BonusUsage).order_by(BonusUsage.created_at, BonusUsage.usage_id)
            if participant_ids is not None:
                stmt = stmt.where(BonusUsage.participant_id.in_(list(participant_ids)))
            if round_number is not None:
                stmt = stmt.where(BonusUsage.round_number == round_number)
            if status is not None:
                stmt = stmt.where(BonusUsage.status == status.value)
            result = await session.execute(stmt)
            return [data_converter.convert_usage_row_to_schema(row) for row in result.scalars().all()]
        except (SQLAlchemyError, OSError) as e:
            logging.error(f"Failed to read usages data: {e}")
            raise StorageUnavailable("Failed to read usages data") from e


class CreateData:
    @staticmethod
    async def create_table(engine: AsyncEngine) -> None:
        """Create tables if not exists"""
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            logging.error(f"Failed to create tables: {e}")
            raise StorageUnavailable("Failed to create tables") from e

    @staticmethod
    async def create_participant_data(participant: ParticipantSchema, session: AsyncSession) -> None:
        """Create or update a participant of the directory

        Args:
            participant (ParticipantSchema): Participant data with its league
        """
        async with session:
            try:
                existing = await session.get(Participant, participant.participant_id)
                if existing is None:
                    session.add(
                        Participant(
                            participant_id=participant.participant_id,
                            display_name=participant.display_name,
                            league_id=participant.league_id,
                            bonus_stock=participant.bonus_stock,
                        )
                    )
                else:
                    existing.display_name = participant.display_name
                    existing.league_id = participant.league_id
                await session.commit()
            except (SQLAlchemyError, OSError) as e:
                logging.error(f"Failed to create participant data: {e}")
                raise StorageUnavailable("Failed to create participant data") from e

    @staticmethod
    async def add_usage_data(usage: UsageRecordSchema, session: AsyncSession) -> None:
        """Add a usage record to the session without committing

        Args:
            usage (UsageRecordSchema): New usage record
        """
        session.add(data_converter.convert_usage_schema_to_row(usage))


class UpdateData:
    @staticmethod
    async def set_participant_stock_no_commit(
        participant_id: str, bonus_stock: StockState, session: AsyncSession
    ) -> None:
        """Overwrite the stored bonus stock of a participant

        Args:
            participant_id (str): To identify the participant
            bonus_stock (StockState): Full stock to store
        """
        row = await session.get(Participant, participant_id)
        if row is None:
            raise NotFound(f"Participant not found: {participant_id}", participant_id=participant_id)
        row.bonus_stock = dict(bonus_stock)

    @staticmethod
    async def set_usage_state_no_commit(
        usage_id: UUID,
        session: AsyncSession,
        *,
        status: UsageStatus,
        resolved: bool,
        resolved_at: datetime | None,
        result: Any,
    ) -> None:
        """Write the mutable fields of a usage record

        Args:
            usage_id (UUID): To identify the usage
        """
        row = await session.get(BonusUsage, usage_id)
        if row is None:
            raise NotFound(f"Usage not found: {usage_id}", usage_id=str(usage_id))
        row.status = status.value
        row.resolved = resolved
        row.resolved_at = resolved_at
        row.result = result
