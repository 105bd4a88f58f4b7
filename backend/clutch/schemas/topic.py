"""Topic Pydantic schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from clutch.models.enums import TopicStatus, TopicType
from clutch.schemas.common import BaseSchema


class TopicBase(BaseSchema):
    """Base topic schema."""

    topic_type: TopicType
    title: str
    description: Optional[str] = None
    options: list[str]
    match_id: Optional[int] = None
    reveal_at: Optional[datetime] = None


class TopicCreate(TopicBase):
    """Topic creation schema."""

    metadata: dict[str, Any] = Field(default_factory=dict)


class TopicResponse(TopicBase):
    """Topic response schema."""

    topic_id: str
    status: TopicStatus
    created_by: int
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="topic_metadata")
    correct_choice: Optional[str] = None
    revealed_at: Optional[datetime] = None
    created_at: datetime


class OptionStats(BaseSchema):
    """Participation totals for one option."""

    choice: str
    votes: int
    points: int
    percentage: float


class TopicStats(BaseSchema):
    """Per-topic statistics for result displays."""

    topic_id: str
    status: TopicStatus
    total_votes: int
    total_points: int
    choice_stats: list[OptionStats]
    is_anonymous: bool
