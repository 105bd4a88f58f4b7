"""Topic database model."""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)

from clutch.database.base import Base, TimestampMixin
from clutch.models.enums import TopicStatus, TopicType, sql_in


class Topic(Base, TimestampMixin):
    """
    A prediction subject with a fixed, ordered set of options.

    Attributes:
        topic_id: Opaque public identifier
        match_id: Optional match the topic is attached to
        topic_type: bet, vote or mission
        options: Ordered list of at least two distinct strings
        status: active -> (closed) -> revealed
        reveal_at: Advisory deadline, not enforced by settlement
        created_by: User id of the creator
        topic_metadata: Free-form settings (mission reward_points lives here)
        correct_choice: Declared outcome, set when revealed
        revealed_at: When the topic was settled
    """

    __tablename__ = "topics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    topic_id = Column(String(128), nullable=False, unique=True)
    match_id = Column(Integer, nullable=True)

    topic_type = Column(String(16), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    options = Column(JSON, nullable=False)

    status = Column(String(16), nullable=False, default=TopicStatus.ACTIVE.value)
    reveal_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Integer, nullable=False)
    topic_metadata = Column("metadata", JSON, nullable=False, default=dict)

    # Settlement
    correct_choice = Column(String(128), nullable=True)
    revealed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            f"topic_type IN ({sql_in(TopicType)})",
            name="valid_topic_type",
        ),
        CheckConstraint(
            f"status IN ({sql_in(TopicStatus)})",
            name="valid_topic_status",
        ),
        Index("idx_topics_status_created", "status", "created_at"),
        Index("idx_topics_match_id", "match_id"),
    )

    @property
    def reward_points(self) -> int | None:
        """Mission reward carried in metadata, if any."""
        value = (self.topic_metadata or {}).get("reward_points")
        return int(value) if value is not None else None

    def __repr__(self) -> str:
        return f"<Topic {self.topic_id} {self.topic_type} [{self.status}]>"
