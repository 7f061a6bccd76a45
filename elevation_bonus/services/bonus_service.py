"""Service layer for bonus use cases.

- Routers should not touch DB sessions directly; they call this module.
- This layer owns session/transaction boundaries and the participant locks.
- Stock decrement and usage creation are written in one transaction.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, AsyncIterator, Callable, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from elevation_bonus.converter import DataConverter
from elevation_bonus.crud import CreateData, ReadData, UpdateData
from elevation_bonus.domain.bonus_rules import BonusCatalog
from elevation_bonus.domain.effects import EffectResolver
from elevation_bonus.domain.eligibility import EligibilityValidator
from elevation_bonus.domain.errors import BonusValidationError, DuplicateUsage, NotFound, StorageUnavailable
from elevation_bonus.domain.round_calendar import RoundCalendar
from elevation_bonus.domain.stock_ledger import StockLedger
from elevation_bonus.domain.usage_registry import UsageRegistry, group_by_type
from elevation_bonus.event_publisher import BonusEventPublisher
from elevation_bonus.models.dc_models import (
    ActivationRequestModel,
    ActivationResultModel,
    ActiveBonusesModel,
    BonusStateModel,
    ParticipantBonusModel,
)
from elevation_bonus.models.schema_models import (
    AdjustedRankingSchema,
    RankingEntrySchema,
    RoundContextSchema,
    StockState,
    UsageRecordSchema,
    UsageStatus,
)
from elevation_bonus.participant_lock_manager import ParticipantLockManager


class BonusService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        catalog: BonusCatalog,
        lock_manager: ParticipantLockManager,
        *,
        calendar: RoundCalendar | None = None,
        publisher: BonusEventPublisher | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.session_factory = session_factory
        self.catalog = catalog
        self.lock_manager = lock_manager
        self.calendar = calendar
        self.publisher = publisher or BonusEventPublisher()
        self.clock = clock
        self.resolver = EffectResolver(catalog)
        self.data_converter = DataConverter()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Open a session and a transaction, committed on success, rolled back on error."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError as e:
            logging.error(f"Integrity error while writing bonus data: {e}")
            raise DuplicateUsage("A usage already exists for this participant, bonus and round") from e
        except (SQLAlchemyError, OSError) as e:
            logging.error(f"Failed to write bonus data: {e}")
            raise StorageUnavailable("Bonus storage is unavailable") from e

    def round_context_for(self, request: ActivationRequestModel, today: date | None = None) -> RoundContextSchema:
        """Flags explicitly set on the request win over the calendar."""
        if request.round_number < 1:
            raise BonusValidationError("round_number must be >= 1", round_number=request.round_number)
        context = RoundContextSchema()
        if self.calendar is not None:
            context = self.calendar.round_context(request.round_number, today or self.clock().date())
        if request.is_final_day is not None:
            context.is_final_day = request.is_final_day
        if request.is_final_round is not None:
            context.is_final_round = request.is_final_round
        return context

    async def list_bonus_state(self, league_id: str) -> BonusStateModel:
        """Participants of a league with their stock, their usages and the catalog.

        A storage read failure yields an empty state.
        """
        try:
            async with self.session_factory() as session:
                participants = await ReadData.read_participants(session, league_id=league_id)
                usages = await ReadData.read_usages(
                    session, participant_ids=[participant.participant_id for participant in participants]
                )
        except StorageUnavailable:
            participants, usages = [], []

        ledger = StockLedger(
            self.catalog, {participant.participant_id: participant.bonus_stock for participant in participants}
        )
        return BonusStateModel(
            participants=[
                ParticipantBonusModel(
                    participant_id=participant.participant_id,
                    display_name=participant.display_name,
                    league_id=participant.league_id,
                    bonus_stock=ledger.get(participant.participant_id),
                )
                for participant in participants
            ],
            usages=usages,
            catalog=self.catalog.as_dict(),
        )

    async def set_stock(self, participant_id: str, bonus_stock: dict[str, Any]) -> StockState:
        async with self.lock_manager.hold(participant_id):
            async with self.transaction() as session:
                participant = await ReadData.read_participant(participant_id, session, for_update=True)
                if participant is None:
                    raise NotFound(f"Participant not found: {participant_id}", participant_id=participant_id)
                ledger = StockLedger(self.catalog, {participant_id: participant.bonus_stock})
                stock = ledger.set(participant_id, bonus_stock)
                await UpdateData.set_participant_stock_no_commit(participant_id, stock, session)
        logging.info(f"Admin: bonus stock of {participant.display_name} set to {stock}")
        return stock

    async def reset_stock(self, league_id: str) -> int:
        """Reset every participant of a league to the initial stock."""
        async with self.session_factory() as session:
            participants = await ReadData.read_participants(session, league_id=league_id)
        participant_ids = [participant.participant_id for participant in participants]

        async with self.lock_manager.hold(*participant_ids):
            async with self.transaction() as session:
                participants = await ReadData.read_participants(session, league_id=league_id, for_update=True)
                ledger = StockLedger(
                    self.catalog,
                    {participant.participant_id: participant.bonus_stock for participant in participants},
                )
                # Only participants whose locks are held are reset.
                in_league = {participant.participant_id for participant in participants} & set(participant_ids)
                count = ledger.reset_all(lambda participant_id: participant_id in in_league)
                for participant_id, stock in ledger.changed().items():
                    await UpdateData.set_participant_stock_no_commit(participant_id, stock, session)
        logging.info(f"Admin: bonus stock reset for {count} participants of league {league_id}")
        return count

    async def activate_bonus(self, participant_id: str, request: ActivationRequestModel) -> ActivationResultModel:
        """Validate an activation, then decrement stock and record the usage atomically."""
        context = self.round_context_for(request)
        async with self.lock_manager.hold(participant_id):
            async with self.transaction() as session:
                participant = await ReadData.read_participant(participant_id, session, for_update=True)
                if participant is None:
                    raise NotFound(f"Participant not found: {participant_id}", participant_id=participant_id)
                ledger = StockLedger(self.catalog, {participant_id: participant.bonus_stock})
                registry = UsageRegistry(
                    await ReadData.read_usages(
                        session, participant_ids=[participant_id], round_number=request.round_number
                    )
                )
                approval = EligibilityValidator(self.catalog, ledger, registry).validate(
                    participant_id, request, context
                )

                target = None
                if approval.target_id is not None:
                    target = await ReadData.read_participant(approval.target_id, session)
                    if target is None:
                        raise NotFound(
                            f"Target participant not found: {approval.target_id}",
                            participant_id=approval.target_id,
                        )

                stock = ledger.decrement(participant_id, approval.bonus_type)
                usage = self.data_converter.convert_approval_to_usage(approval, participant, target, self.clock())
                registry.record(usage)
                await UpdateData.set_participant_stock_no_commit(participant_id, stock, session)
                await CreateData.add_usage_data(usage, session)

        logging.info(f"Bonus used: {usage.bonus_type} by {participant.display_name} for round {usage.round_number}")
        await self.publisher.publish("activated", usage)
        return ActivationResultModel(usage=usage, remaining_stock=stock[approval.bonus_type.value])

    async def list_active_for_round(self, round_number: int) -> ActiveBonusesModel:
        try:
            async with self.session_factory() as session:
                usages = await ReadData.read_usages(session, round_number=round_number, status=UsageStatus.active)
        except StorageUnavailable:
            usages = []

        active = UsageRegistry(usages).active_for_round(round_number)
        grouped = group_by_type(active)
        return ActiveBonusesModel(round_number=round_number, total_active=len(active), **grouped)

    async def resolve_usage(self, usage_id: UUID, result: Any) -> UsageRecordSchema:
        """Record the outcome of a usage. Resolving again overwrites the result."""
        usage = await self._update_usage(
            usage_id, lambda registry: registry.resolve(usage_id, result, self.clock())
        )
        logging.info(f"Admin: usage {usage_id} resolved")
        await self.publisher.publish("resolved", usage)
        return usage

    async def cancel_usage(self, usage_id: UUID) -> UsageRecordSchema:
        """Cancel a usage, freeing its round slot. Stock is not refunded."""
        usage = await self._update_usage(usage_id, lambda registry: registry.cancel(usage_id))
        logging.info(f"Admin: usage {usage_id} cancelled")
        await self.publisher.publish("cancelled", usage)
        return usage

    async def compute_adjusted_ranking(
        self, ranking: Sequence[RankingEntrySchema], round_number: int
    ) -> AdjustedRankingSchema:
        async with self.session_factory() as session:
            usages = await ReadData.read_usages(session, round_number=round_number, status=UsageStatus.active)
        active = UsageRegistry(usages).active_for_round(round_number)
        return self.resolver.apply(ranking, active)

    async def _update_usage(
        self, usage_id: UUID, change: Callable[[UsageRegistry], UsageRecordSchema]
    ) -> UsageRecordSchema:
        async with self.transaction() as session:
            current = await ReadData.read_usage(usage_id, session, for_update=True)
            if current is None:
                raise NotFound(f"Usage not found: {usage_id}", usage_id=str(usage_id))
            usage = change(UsageRegistry([current]))
            await UpdateData.set_usage_state_no_commit(
                usage_id,
                session,
                status=usage.status,
                resolved=usage.resolved,
                resolved_at=usage.resolved_at,
                result=usage.result,
            )
        return usage

