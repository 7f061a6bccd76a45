"""Bonus card rules that are independent from HTTP and DB.

The catalog is built once at startup and handed to every component that needs
it; nothing here reads module state at call time.

Rule of thumb:
- OK: constants, lookups, validation of configuration values.
- Not OK: touching DB sessions, Redis, FastAPI, datetime.now(), etc.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List

from elevation_bonus.domain.errors import UnknownBonusType
from elevation_bonus.models.schema_models import (
    BonusConfigSchema,
    BonusType,
    DuelCriteriaSchema,
    RoundContextSchema,
    StockState,
)

MIN_STOCK = 0
MAX_STOCK = 5
DEFAULT_INITIAL_STOCK = 2

# A round has five scoring days; the multiplier targets one of them.
MULTIPLIER_DAYS_PER_ROUND = 5

DEFAULT_DUEL_CRITERIA = [
    DuelCriteriaSchema(
        criteria_id="single_elevation",
        name="Best elevation gain on a single activity",
        metric="total_elevation_gain",
    ),
    DuelCriteriaSchema(
        criteria_id="single_distance",
        name="Best distance on a single activity",
        metric="distance",
    ),
    DuelCriteriaSchema(
        criteria_id="only_bike",
        name="Cycling elevation gain only",
        metric="total_elevation_gain",
        sport_filter=["Ride", "MountainBikeRide", "GravelRide"],
    ),
    DuelCriteriaSchema(
        criteria_id="only_run",
        name="Running elevation gain only",
        metric="total_elevation_gain",
        sport_filter=["Run", "TrailRun"],
    ),
]


def default_bonus_configs() -> List[BonusConfigSchema]:
    """Return the standard configuration of the four bonus cards."""
    return [
        BonusConfigSchema(
            bonus_type=BonusType.duel,
            name="Duel",
            initial_stock=DEFAULT_INITIAL_STOCK,
            steal_percentage=25,
            not_usable_on_final_day=True,
            criteria=DEFAULT_DUEL_CRITERIA,
        ),
        BonusConfigSchema(
            bonus_type=BonusType.multiplier,
            name="Multiplier",
            initial_stock=DEFAULT_INITIAL_STOCK,
            factor=2,
        ),
        BonusConfigSchema(
            bonus_type=BonusType.shield,
            name="Shield",
            initial_stock=DEFAULT_INITIAL_STOCK,
            not_usable_in_final_round=True,
        ),
        BonusConfigSchema(
            bonus_type=BonusType.sabotage,
            name="Sabotage",
            initial_stock=DEFAULT_INITIAL_STOCK,
            fixed_amount=250,
        ),
    ]


class BonusCatalog:
    """Read-only lookup table of bonus configurations keyed by bonus type."""

    def __init__(self, configs: Iterable[BonusConfigSchema] | None = None):
        if configs is None:
            configs = default_bonus_configs()
        table: Dict[BonusType, BonusConfigSchema] = {}
        for config in configs:
            if not MIN_STOCK <= config.initial_stock <= MAX_STOCK:
                raise ValueError(
                    f"initial_stock for {config.bonus_type.value} must be between {MIN_STOCK} and {MAX_STOCK}"
                )
            table[config.bonus_type] = config
        self._configs = MappingProxyType(table)

    def config_for(self, bonus_type: str | BonusType) -> BonusConfigSchema:
        """Return the configuration of a bonus type.

        Raises:
            UnknownBonusType: the type is not part of this catalog
        """
        try:
            key = BonusType(bonus_type)
        except ValueError:
            raise UnknownBonusType(f"Unknown bonus type: {bonus_type}", bonus_type=str(bonus_type))
        config = self._configs.get(key)
        if config is None:
            raise UnknownBonusType(f"Unknown bonus type: {bonus_type}", bonus_type=key.value)
        return config

    def bonus_types(self) -> List[BonusType]:
        return list(self._configs)

    def initial_stock(self) -> StockState:
        return {bonus_type.value: config.initial_stock for bonus_type, config in self._configs.items()}

    def is_usable_now(self, bonus_type: str | BonusType, context: RoundContextSchema) -> bool:
        config = self.config_for(bonus_type)
        if config.not_usable_on_final_day and context.is_final_day:
            return False
        if config.not_usable_in_final_round and context.is_final_round:
            return False
        return True

    def as_dict(self) -> Dict[str, BonusConfigSchema]:
        return {bonus_type.value: config for bonus_type, config in self._configs.items()}
