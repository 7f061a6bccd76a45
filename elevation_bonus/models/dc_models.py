from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from elevation_bonus.models.schema_models import (
    BonusConfigSchema,
    DuelUsageSchema,
    MultiplierUsageSchema,
    SabotageUsageSchema,
    ShieldUsageSchema,
    StockState,
    UsageRecordSchema,
)


class ActivationRequestModel(BaseModel):
    # bonus_type stays a plain string so an unknown type is reported by the
    # validator instead of being rejected by request parsing.
    bonus_type: str
    round_number: int
    target_id: Optional[str] = None
    criteria_id: Optional[str] = None
    day_index: Optional[int] = None
    is_final_day: Optional[bool] = None
    is_final_round: Optional[bool] = None


class StockUpdateModel(BaseModel):
    bonus_stock: Dict[str, Any]


class ResolveUsageModel(BaseModel):
    result: Any = None


class RankingEntryModel(BaseModel):
    participant_id: str
    total: float


class RankingRequestModel(BaseModel):
    ranking: List[RankingEntryModel]


class ParticipantBonusModel(BaseModel):
    participant_id: str
    display_name: str
    league_id: str
    bonus_stock: StockState


class BonusStateModel(BaseModel):
    participants: List[ParticipantBonusModel]
    usages: List[UsageRecordSchema]
    catalog: Dict[str, BonusConfigSchema]


class StockResultModel(BaseModel):
    participant_id: str
    bonus_stock: StockState


class ResetResultModel(BaseModel):
    league_id: str
    count: int


class ActivationResultModel(BaseModel):
    usage: UsageRecordSchema
    remaining_stock: int


class ActiveBonusesModel(BaseModel):
    round_number: int
    total_active: int
    duel: List[DuelUsageSchema] = []
    multiplier: List[MultiplierUsageSchema] = []
    shield: List[ShieldUsageSchema] = []
    sabotage: List[SabotageUsageSchema] = []
