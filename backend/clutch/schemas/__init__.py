"""Pydantic schemas module."""

from clutch.schemas.common import BaseSchema, ErrorResponse
from clutch.schemas.participation import (
    MyParticipationResponse,
    ParticipationCreate,
    ParticipationResponse,
)
from clutch.schemas.points import LedgerEntryResponse, PointsResponse
from clutch.schemas.settlement import (
    PayoutResult,
    SettlementRecordResponse,
    SettlementResult,
    SettleRequest,
)
from clutch.schemas.topic import OptionStats, TopicCreate, TopicResponse, TopicStats

__all__ = [
    "BaseSchema",
    "ErrorResponse",
    "LedgerEntryResponse",
    "MyParticipationResponse",
    "OptionStats",
    "ParticipationCreate",
    "ParticipationResponse",
    "PayoutResult",
    "PointsResponse",
    "SettlementRecordResponse",
    "SettlementResult",
    "SettleRequest",
    "TopicCreate",
    "TopicResponse",
    "TopicStats",
]
