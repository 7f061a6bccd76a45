from datetime import datetime

from uuid6 import uuid7

from elevation_bonus.domain.eligibility import ActivationApproval
from elevation_bonus.models.schema_models import (
    ParticipantSchema,
    UsageRecordSchema,
    UsageStatus,
    usage_record_adapter,
)
from elevation_bonus.models.schemas import BonusUsage


class DataConverter:
    """This class is used to convert data between different formats."""

    def convert_usage_row_to_schema(self, row: BonusUsage) -> UsageRecordSchema:
        """Convert a bonus_usage row to the usage variant matching its bonus type

        Args:
            row (BonusUsage): Row read from the bonus_usage table

        Returns:
            UsageRecordSchema: Duel, sabotage, multiplier or shield usage
        """
        # Columns of the other variants are ignored by validation.
        data = {column.name: getattr(row, column.name) for column in BonusUsage.__table__.columns}
        return usage_record_adapter.validate_python(data)

    def convert_usage_schema_to_row(self, usage: UsageRecordSchema) -> BonusUsage:
        """Convert a usage variant to a new bonus_usage row

        Args:
            usage (UsageRecordSchema): Usage produced by an activation

        Returns:
            BonusUsage: Row ready to be added to a session
        """
        return BonusUsage(
            usage_id=usage.usage_id,
            participant_id=usage.participant_id,
            participant_name=usage.participant_name,
            bonus_type=usage.bonus_type,
            target_id=getattr(usage, "target_id", None),
            target_name=getattr(usage, "target_name", None),
            round_number=usage.round_number,
            criteria_id=getattr(usage, "criteria_id", None),
            day_index=getattr(usage, "day_index", None),
            created_at=usage.created_at,
            status=usage.status.value,
            resolved=usage.resolved,
            resolved_at=usage.resolved_at,
            result=usage.result,
        )

    def convert_approval_to_usage(
        self,
        approval: ActivationApproval,
        participant: ParticipantSchema,
        target: ParticipantSchema | None,
        created_at: datetime,
    ) -> UsageRecordSchema:
        """Build the usage record of an approved activation

        Names are copied from the participant directory at creation time.

        Args:
            approval (ActivationApproval): Output of the eligibility validator
            participant (ParticipantSchema): The participant activating the bonus
            target (ParticipantSchema | None): Target of a duel or sabotage
            created_at (datetime): Activation time

        Returns:
            UsageRecordSchema: New active, unresolved usage
        """
        data = {
            "usage_id": uuid7(),
            "participant_id": participant.participant_id,
            "participant_name": participant.display_name,
            "bonus_type": approval.bonus_type.value,
            "round_number": approval.round_number,
            "created_at": created_at,
            "status": UsageStatus.active,
        }
        if approval.target_id is not None:
            data["target_id"] = approval.target_id
            data["target_name"] = target.display_name if target is not None else None
        if approval.criteria_id is not None:
            data["criteria_id"] = approval.criteria_id
        if approval.day_index is not None:
            data["day_index"] = approval.day_index
        return usage_record_adapter.validate_python(data)
