"""Participation Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from clutch.models.enums import TopicType
from clutch.schemas.common import BaseSchema


class ParticipationCreate(BaseSchema):
    """Vote or stake submission."""

    choice: str
    points: Optional[int] = Field(default=None, ge=1)  # Bets only
    is_anonymous: bool = False


class ParticipationResponse(BaseSchema):
    """Public view of a participation. Never carries the user id."""

    topic_id: str
    topic_type: TopicType
    voter_identity: str
    is_anonymous: bool
    choice: str
    stake: int
    payout: Optional[int] = None
    revealed_at: Optional[datetime] = None
    created_at: datetime


class MyParticipationResponse(ParticipationResponse):
    """A user's own participation history entry, with the topic snapshot."""

    title: str
    options: list[str]
    match_id: Optional[int] = None
