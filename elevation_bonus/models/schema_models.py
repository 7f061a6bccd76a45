from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter

# bonus type value -> remaining count
StockState = Dict[str, int]


class BonusType(str, Enum):
    duel = "duel"
    multiplier = "multiplier"
    shield = "shield"
    sabotage = "sabotage"


class UsageStatus(str, Enum):
    active = "active"
    cancelled = "cancelled"


class DuelCriteriaSchema(BaseModel):
    criteria_id: str
    name: str
    metric: str
    sport_filter: List[str] = []

    class Config:
        frozen = True


class BonusConfigSchema(BaseModel):
    bonus_type: BonusType
    name: str
    initial_stock: int
    steal_percentage: Optional[int] = None
    factor: Optional[float] = None
    fixed_amount: Optional[int] = None
    not_usable_on_final_day: bool = False
    not_usable_in_final_round: bool = False
    criteria: List[DuelCriteriaSchema] = []

    class Config:
        frozen = True


class RoundContextSchema(BaseModel):
    is_final_day: bool = False
    is_final_round: bool = False


class ParticipantSchema(BaseModel):
    participant_id: str
    display_name: str
    league_id: str
    bonus_stock: Optional[StockState] = None

    class Config:
        from_attributes = True


class UsageBaseSchema(BaseModel):
    usage_id: UUID
    participant_id: str
    participant_name: str | None
    round_number: int
    created_at: datetime
    status: UsageStatus = UsageStatus.active
    resolved: bool = False
    resolved_at: datetime | None = None
    result: Any = None

    class Config:
        from_attributes = True


class DuelUsageSchema(UsageBaseSchema):
    bonus_type: Literal["duel"] = "duel"
    target_id: str
    target_name: str | None = None
    criteria_id: str


class SabotageUsageSchema(UsageBaseSchema):
    bonus_type: Literal["sabotage"] = "sabotage"
    target_id: str
    target_name: str | None = None


class MultiplierUsageSchema(UsageBaseSchema):
    bonus_type: Literal["multiplier"] = "multiplier"
    day_index: int = Field(ge=0, le=4)


class ShieldUsageSchema(UsageBaseSchema):
    bonus_type: Literal["shield"] = "shield"


UsageRecordSchema = Annotated[
    Union[DuelUsageSchema, SabotageUsageSchema, MultiplierUsageSchema, ShieldUsageSchema],
    Field(discriminator="bonus_type"),
]
usage_record_adapter = TypeAdapter(UsageRecordSchema)


class RankingEntrySchema(BaseModel):
    participant_id: str
    total: float
    position: int | None = None


class DuelWonEffectSchema(BaseModel):
    type: Literal["duel_won"] = "duel_won"
    winner_id: str
    loser_id: str
    amount: int


class SabotageEffectSchema(BaseModel):
    type: Literal["sabotage"] = "sabotage"
    target_id: str
    amount: int


BonusEffectSchema = Annotated[
    Union[DuelWonEffectSchema, SabotageEffectSchema],
    Field(discriminator="type"),
]


class AdjustedRankingSchema(BaseModel):
    ranking: List[RankingEntrySchema]
    effects: List[BonusEffectSchema]
