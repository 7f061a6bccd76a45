"""Usage records of bonus activations, held as an ordered in-memory snapshot."""

from datetime import datetime
from typing import Any, Dict, Iterable, List
from uuid import UUID

from elevation_bonus.domain.errors import DuplicateUsage, NotFound
from elevation_bonus.models.schema_models import BonusType, UsageRecordSchema, UsageStatus


class UsageRegistry:
    """Append-only list of usage records; records are mutated, never removed.

    The order of the snapshot is activation order and is kept as-is, because
    the effect resolver applies same-type bonuses in that order.
    """

    def __init__(self, records: Iterable[UsageRecordSchema] = ()):
        self._records: List[UsageRecordSchema] = list(records)
        self._changed: set[UUID] = set()

    def find_active_or_resolved(
        self, participant_id: str, bonus_type: str | BonusType, round_number: int
    ) -> UsageRecordSchema | None:
        """Return the non-cancelled record for (participant, type, round), if any."""
        bonus_type = BonusType(bonus_type).value
        for usage in self._records:
            if (
                usage.participant_id == participant_id
                and usage.bonus_type == bonus_type
                and usage.round_number == round_number
                and usage.status != UsageStatus.cancelled
            ):
                return usage
        return None

    def record(self, usage: UsageRecordSchema) -> None:
        """Append a new usage record.

        Raises:
            DuplicateUsage: the usage id is taken, or a non-cancelled record already holds the same slot
        """
        if self._find(usage.usage_id) is not None:
            raise DuplicateUsage(f"Usage {usage.usage_id} already recorded", usage_id=str(usage.usage_id))
        existing = self.find_active_or_resolved(usage.participant_id, usage.bonus_type, usage.round_number)
        if existing is not None:
            raise DuplicateUsage(
                f"{usage.bonus_type} already recorded for round {usage.round_number}",
                participant_id=usage.participant_id,
                bonus_type=usage.bonus_type,
                round_number=usage.round_number,
                usage_id=str(existing.usage_id),
            )
        self._records.append(usage)
        self._changed.add(usage.usage_id)

    def active_for_round(self, round_number: int) -> List[UsageRecordSchema]:
        return [
            usage
            for usage in self._records
            if usage.round_number == round_number and usage.status == UsageStatus.active
        ]

    def get(self, usage_id: UUID) -> UsageRecordSchema:
        usage = self._find(usage_id)
        if usage is None:
            raise NotFound(f"Usage not found: {usage_id}", usage_id=str(usage_id))
        return usage

    def resolve(self, usage_id: UUID, result: Any, resolved_at: datetime) -> UsageRecordSchema:
        """Mark a usage as resolved. Resolving twice overwrites the previous result."""
        return self._update(usage_id, resolved=True, resolved_at=resolved_at, result=result)

    def cancel(self, usage_id: UUID) -> UsageRecordSchema:
        return self._update(usage_id, status=UsageStatus.cancelled)

    def all(self) -> List[UsageRecordSchema]:
        return list(self._records)

    def changed(self) -> List[UsageRecordSchema]:
        return [usage for usage in self._records if usage.usage_id in self._changed]

    def _find(self, usage_id: UUID) -> UsageRecordSchema | None:
        for usage in self._records:
            if usage.usage_id == usage_id:
                return usage
        return None

    def _update(self, usage_id: UUID, **changes: Any) -> UsageRecordSchema:
        usage = self.get(usage_id)
        updated = usage.model_copy(update=changes)
        index = next(i for i, record in enumerate(self._records) if record.usage_id == usage_id)
        self._records[index] = updated
        self._changed.add(usage_id)
        return updated


def group_by_type(usages: Iterable[UsageRecordSchema]) -> Dict[str, List[UsageRecordSchema]]:
    grouped: Dict[str, List[UsageRecordSchema]] = {bonus_type.value: [] for bonus_type in BonusType}
    for usage in usages:
        grouped[usage.bonus_type].append(usage)
    return grouped
