"""Apply bonus effects to an aggregated ranking snapshot.

Only duel and sabotage change totals here. Multiplier and shield act on the
per-activity data and are honoured upstream, when the ranking is aggregated.
"""

import logging
import math
from typing import Dict, List, Sequence

from elevation_bonus.domain.bonus_rules import BonusCatalog
from elevation_bonus.models.schema_models import (
    AdjustedRankingSchema,
    BonusType,
    DuelWonEffectSchema,
    RankingEntrySchema,
    SabotageEffectSchema,
    UsageRecordSchema,
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


class EffectResolver:
    def __init__(self, catalog: BonusCatalog):
        self.catalog = catalog

    def apply(
        self,
        ranking: Sequence[RankingEntrySchema],
        active_usages: Sequence[UsageRecordSchema],
    ) -> AdjustedRankingSchema:
        """Return a re-ranked copy of ``ranking`` with duel and sabotage effects applied.

        The input entries are never modified. Usages referring to participants
        absent from the ranking are skipped.

        Args:
            ranking (Sequence[RankingEntrySchema]): Aggregated totals, one entry per participant
            active_usages (Sequence[UsageRecordSchema]): Active usages of the round, in activation order

        Returns:
            AdjustedRankingSchema: New ranking with positions 1..N and the effect log
        """
        entries: List[RankingEntrySchema] = [entry.model_copy() for entry in ranking]
        by_id: Dict[str, RankingEntrySchema] = {}
        for entry in entries:
            by_id.setdefault(entry.participant_id, entry)
        effects = []

        duels = [usage for usage in active_usages if usage.bonus_type == BonusType.duel.value]
        if duels:
            steal_percentage = self.catalog.config_for(BonusType.duel).steal_percentage or 0
            for duel in duels:
                challenger = by_id.get(duel.participant_id)
                target = by_id.get(duel.target_id)
                if challenger is None or target is None:
                    logging.debug(f"Duel {duel.usage_id} skipped: participant missing from ranking")
                    continue
                if challenger.total <= target.total:
                    logging.debug(f"Duel {duel.usage_id} lost by {duel.participant_id}")
                    continue
                amount = round_half_up(target.total * steal_percentage / 100)
                challenger.total += amount
                target.total -= amount
                effects.append(
                    DuelWonEffectSchema(winner_id=challenger.participant_id, loser_id=target.participant_id, amount=amount)
                )

        sabotages = [usage for usage in active_usages if usage.bonus_type == BonusType.sabotage.value]
        if sabotages:
            fixed_amount = self.catalog.config_for(BonusType.sabotage).fixed_amount or 0
            for sabotage in sabotages:
                target = by_id.get(sabotage.target_id)
                if target is None:
                    logging.debug(f"Sabotage {sabotage.usage_id} skipped: target missing from ranking")
                    continue
                target.total = max(0, target.total - fixed_amount)
                effects.append(SabotageEffectSchema(target_id=target.participant_id, amount=fixed_amount))

        # sorted() is stable: equal totals keep their working-copy order.
        entries = sorted(entries, key=lambda entry: -entry.total)
        for position, entry in enumerate(entries, start=1):
            entry.position = position

        return AdjustedRankingSchema(ranking=entries, effects=effects)
