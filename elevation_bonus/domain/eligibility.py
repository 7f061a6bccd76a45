"""Eligibility checks for bonus activations.

Validation is read-only: it never touches the ledger or the registry beyond
reading them. The returned approval is consumed by the activation service,
which decrements stock and records the usage in one transaction.
"""

from pydantic import BaseModel

from elevation_bonus.domain.bonus_rules import MULTIPLIER_DAYS_PER_ROUND, BonusCatalog
from elevation_bonus.domain.errors import (
    AlreadyUsedThisRound,
    BonusNotUsableNow,
    InsufficientStock,
    InvalidDayIndex,
    MissingDuelParameters,
    MissingTarget,
)
from elevation_bonus.domain.stock_ledger import StockLedger
from elevation_bonus.domain.usage_registry import UsageRegistry
from elevation_bonus.models.dc_models import ActivationRequestModel
from elevation_bonus.models.schema_models import BonusConfigSchema, BonusType, RoundContextSchema


class ActivationApproval(BaseModel):
    participant_id: str
    config: BonusConfigSchema
    round_number: int
    target_id: str | None = None
    criteria_id: str | None = None
    day_index: int | None = None

    @property
    def bonus_type(self) -> BonusType:
        return self.config.bonus_type


class EligibilityValidator:
    def __init__(self, catalog: BonusCatalog, ledger: StockLedger, registry: UsageRegistry):
        self.catalog = catalog
        self.ledger = ledger
        self.registry = registry

    def validate(
        self,
        participant_id: str,
        request: ActivationRequestModel,
        context: RoundContextSchema,
    ) -> ActivationApproval:
        """Check a bonus activation, stopping at the first failed rule.

        Order: bonus type, stock, one use per round, type parameters, then
        the round-context restrictions (final day / final round).

        Args:
            participant_id (str): The participant activating the bonus
            request (ActivationRequestModel): Requested bonus and its parameters
            context (RoundContextSchema): Calendar flags supplied by the caller

        Returns:
            ActivationApproval: The validated activation
        """
        config = self.catalog.config_for(request.bonus_type)
        bonus_type = config.bonus_type.value

        remaining = self.ledger.get(participant_id)[bonus_type]
        if remaining <= 0:
            raise InsufficientStock(
                f"{config.name} is not available",
                bonus_type=bonus_type,
                stock=remaining,
            )

        existing = self.registry.find_active_or_resolved(participant_id, bonus_type, request.round_number)
        if existing is not None:
            raise AlreadyUsedThisRound(
                f"{config.name} already used in round {request.round_number}",
                bonus_type=bonus_type,
                round_number=request.round_number,
                usage_id=str(existing.usage_id),
            )

        self._check_parameters(config, request)

        if not self.catalog.is_usable_now(config.bonus_type, context):
            raise BonusNotUsableNow(
                f"{config.name} cannot be used now",
                bonus_type=bonus_type,
                is_final_day=context.is_final_day,
                is_final_round=context.is_final_round,
            )

        return ActivationApproval(
            participant_id=participant_id,
            config=config,
            round_number=request.round_number,
            target_id=request.target_id if config.bonus_type in (BonusType.duel, BonusType.sabotage) else None,
            criteria_id=request.criteria_id if config.bonus_type == BonusType.duel else None,
            day_index=request.day_index if config.bonus_type == BonusType.multiplier else None,
        )

    @staticmethod
    def _check_parameters(config: BonusConfigSchema, request: ActivationRequestModel) -> None:
        if config.bonus_type == BonusType.duel:
            if not request.target_id or not request.criteria_id:
                raise MissingDuelParameters(
                    "target_id and criteria_id are required for a duel",
                    target_id=request.target_id,
                    criteria_id=request.criteria_id,
                )
        elif config.bonus_type == BonusType.sabotage:
            if not request.target_id:
                raise MissingTarget("target_id is required for a sabotage")
        elif config.bonus_type == BonusType.multiplier:
            if request.day_index is None or not 0 <= request.day_index < MULTIPLIER_DAYS_PER_ROUND:
                raise InvalidDayIndex(
                    f"day_index must be between 0 and {MULTIPLIER_DAYS_PER_ROUND - 1}",
                    day_index=request.day_index,
                )
