from datetime import datetime

from sqlalchemy import Index, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.schema import Column
from sqlalchemy.types import JSON, Boolean, DateTime, Integer, String, Uuid
from uuid6 import uuid7

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class Participant(Base):
    __tablename__ = "participant"
    participant_id = Column(String, primary_key=True)
    display_name = Column(String)
    league_id = Column(String, index=True)
    bonus_stock = Column(JSONType, nullable=True)  # NULL until the first stock mutation

    usages = relationship(
        "BonusUsage",
        primaryjoin="Participant.participant_id == foreign(BonusUsage.participant_id)",
        back_populates="participant",
        viewonly=True,
    )


class BonusUsage(Base):
    __tablename__ = "bonus_usage"
    usage_id = Column(Uuid, primary_key=True, default=uuid7)
    participant_id = Column(String, index=True)
    participant_name = Column(String)
    bonus_type = Column(String)
    target_id = Column(String, nullable=True)
    target_name = Column(String, nullable=True)
    round_number = Column(Integer, index=True)
    criteria_id = Column(String, nullable=True)
    day_index = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    status = Column(String, default="active")
    resolved = Column(Boolean, default=False)
    resolved_at = Column(DateTime, nullable=True)
    result = Column(JSONType, nullable=True)

    participant = relationship(
        "Participant",
        primaryjoin="foreign(BonusUsage.participant_id) == Participant.participant_id",
        back_populates="usages",
        viewonly=True,
    )

    __table_args__ = (
        # One non-cancelled usage per (participant, bonus type, round).
        Index(
            "uq_bonus_usage_slot",
            "participant_id",
            "bonus_type",
            "round_number",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )
