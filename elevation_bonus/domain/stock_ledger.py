"""Per-participant bonus stock accounting over an in-memory snapshot."""

import logging
from typing import Any, Callable, Dict, Mapping

from elevation_bonus.domain.bonus_rules import MAX_STOCK, MIN_STOCK, BonusCatalog
from elevation_bonus.domain.errors import (
    BonusValidationError,
    InsufficientStock,
    NotFound,
    UnknownBonusType,
)
from elevation_bonus.models.schema_models import BonusType, StockState


class StockLedger:
    """Remaining bonus stock for a set of participants.

    The ledger is loaded from a storage snapshot where ``None`` means the
    participant never had stock recorded. Reading such a participant returns the
    catalog's initial stock without marking it as changed; only ``set``,
    ``reset_all`` and ``decrement`` mark entries for write-back.
    """

    def __init__(self, catalog: BonusCatalog, stocks: Mapping[str, StockState | None] | None = None):
        self.catalog = catalog
        self._stocks: Dict[str, StockState | None] = dict(stocks or {})
        self._changed: set[str] = set()

    def get(self, participant_id: str) -> StockState:
        """Return the participant's stock, defaulting to the initial stock.

        Args:
            participant_id (str): To identify the participant

        Returns:
            StockState: One count per bonus type of the catalog
        """
        stock = self.catalog.initial_stock()
        stored = self._stocks.get(participant_id)
        if stored:
            stock.update({key: value for key, value in stored.items() if key in stock})
        return stock

    def set(self, participant_id: str, stock: Mapping[str, Any]) -> StockState:
        """Administrative overwrite of a participant's stock.

        Keys left out of ``stock`` fall back to the initial stock on read.

        Raises:
            BonusValidationError: unknown bonus type or a count outside [0, 5]
        """
        self._require_known(participant_id)
        validated = self.validate_stock(stock)
        self._stocks[participant_id] = validated
        self._changed.add(participant_id)
        return self.get(participant_id)

    def reset_all(self, predicate: Callable[[str], bool]) -> int:
        """Reset every participant matching ``predicate`` to the initial stock.

        Returns:
            int: Number of participants reset
        """
        count = 0
        for participant_id in list(self._stocks):
            if predicate(participant_id):
                self._stocks[participant_id] = self.catalog.initial_stock()
                self._changed.add(participant_id)
                count += 1
        return count

    def decrement(self, participant_id: str, bonus_type: str | BonusType) -> StockState:
        """Consume one unit of ``bonus_type``.

        Raises:
            InsufficientStock: the current count is already 0
        """
        self._require_known(participant_id)
        key = self.catalog.config_for(bonus_type).bonus_type.value
        stock = self.get(participant_id)
        if stock[key] <= MIN_STOCK:
            raise InsufficientStock(
                f"No {key} left for participant {participant_id}",
                participant_id=participant_id,
                bonus_type=key,
                stock=stock[key],
            )
        stock[key] -= 1
        self._stocks[participant_id] = stock
        self._changed.add(participant_id)
        logging.debug(f"Stock of {key} for {participant_id} is now {stock[key]}")
        return dict(stock)

    def validate_stock(self, stock: Mapping[str, Any]) -> StockState:
        if not isinstance(stock, Mapping):
            raise BonusValidationError("Stock must be a mapping of bonus type to count")
        validated: StockState = {}
        for key, value in stock.items():
            try:
                bonus_type = self.catalog.config_for(key).bonus_type
            except UnknownBonusType:
                raise BonusValidationError(f"Unknown bonus type: {key}", field=str(key))
            if isinstance(value, bool) or not isinstance(value, int):
                raise BonusValidationError(f"Invalid value for {key}", field=str(key), value=value)
            if not MIN_STOCK <= value <= MAX_STOCK:
                raise BonusValidationError(
                    f"Value for {key} must be between {MIN_STOCK} and {MAX_STOCK}",
                    field=str(key),
                    value=value,
                )
            validated[bonus_type.value] = value
        return validated

    def changed(self) -> Dict[str, StockState]:
        """Return the full stock of every participant mutated since loading."""
        return {participant_id: self.get(participant_id) for participant_id in sorted(self._changed)}

    def _require_known(self, participant_id: str) -> None:
        if participant_id not in self._stocks:
            raise NotFound(f"Participant not found: {participant_id}", participant_id=participant_id)
