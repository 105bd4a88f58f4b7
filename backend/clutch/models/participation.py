"""Participation (stake/vote) database model."""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from clutch.database.base import Base, utcnow


class Participation(Base):
    """
    One user's vote or stake on a topic.

    The topic is referenced by its public id rather than a foreign key, and
    title/options/type are a snapshot taken at submission time. Settlement
    always re-reads the live topic.

    user_id is auxiliary: it is used for crediting payouts and for the
    one-record-per-user uniqueness constraint, and is never exposed for
    anonymous participations.
    """

    __tablename__ = "participations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    topic_id = Column(String(128), nullable=False)
    user_id = Column(Integer, nullable=False)

    voter_identity = Column(String(128), nullable=False)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    choice = Column(String(128), nullable=False)
    stake = Column(Integer, nullable=False, default=0)

    # Snapshot of the topic at submission time
    topic_type = Column(String(16), nullable=False)
    title = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)
    match_id = Column(Integer, nullable=True)

    moderation_flag = Column(Boolean, nullable=False, default=False)

    # Stamped at settlement
    payout = Column(Integer, nullable=True)
    revealed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("topic_id", "user_id", name="uq_participation_topic_user"),
        CheckConstraint("stake >= 0", name="non_negative_stake"),
        Index("idx_participations_topic_id", "topic_id"),
        Index("idx_participations_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Participation {self.voter_identity} -> {self.choice!r} ({self.stake}) on {self.topic_id}>"
