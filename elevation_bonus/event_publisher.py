import json
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from elevation_bonus.models.schema_models import UsageRecordSchema


class BonusEventPublisher:
    """Publish bonus lifecycle events so that standings views can refresh.

    Channel name is ``bonus:{round_number}``. Publishing happens after the
    database commit; a failed publish is logged and does not undo the change.
    """

    def __init__(self, redis: Redis | None = None):
        self.redis = redis

    @staticmethod
    def channel(round_number: int) -> str:
        return f"bonus:{round_number}"

    async def publish(self, event: str, usage: UsageRecordSchema) -> None:
        if self.redis is None:
            return
        payload = json.dumps(
            {
                "event": event,
                "usage_id": str(usage.usage_id),
                "participant_id": usage.participant_id,
                "bonus_type": usage.bonus_type,
                "round_number": usage.round_number,
            }
        )
        try:
            await self.redis.publish(self.channel(usage.round_number), payload)
        except RedisError as e:
            logging.error(f"Failed to publish bonus event {event}: {e}")
