from datetime import datetime, timedelta
from itertools import count

from uuid6 import uuid7

from elevation_bonus.models.schema_models import UsageRecordSchema, UsageStatus, usage_record_adapter

_minutes = count()


class TickingClock:
    """Returns a new instant one second later on every call."""

    def __init__(self, start: datetime = datetime(2026, 3, 4, 12, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def make_usage(
    bonus_type: str,
    participant_id: str,
    round_number: int = 1,
    status: UsageStatus = UsageStatus.active,
    **fields,
) -> UsageRecordSchema:
    data = {
        "usage_id": uuid7(),
        "participant_id": participant_id,
        "participant_name": participant_id.title(),
        "bonus_type": bonus_type,
        "round_number": round_number,
        "created_at": datetime(2026, 3, 4, 12, next(_minutes) % 60),
        "status": status,
    }
    if bonus_type == "duel":
        data.setdefault("criteria_id", "single_elevation")
    if bonus_type == "multiplier":
        data.setdefault("day_index", 0)
    data.update(fields)
    return usage_record_adapter.validate_python(data)
