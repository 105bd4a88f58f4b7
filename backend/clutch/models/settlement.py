"""Settlement database model."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
)

from clutch.database.base import Base, utcnow
from clutch.models.enums import PayoutModel, sql_in


class Settlement(Base):
    """Topic settlement record, at most one per topic."""

    __tablename__ = "settlements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    topic_id = Column(String(128), nullable=False, unique=True)

    # Settlement details
    correct_choice = Column(String(128), nullable=False)
    settled_by = Column(Integer, nullable=False)
    payout_model = Column(String(16), nullable=False)

    # Metrics
    total_pool = Column(Integer, nullable=False, default=0)
    winning_pool = Column(Integer, nullable=False, default=0)
    total_credited = Column(Integer, nullable=False, default=0)
    winner_count = Column(Integer, nullable=False, default=0)

    settled_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(
            f"payout_model IN ({sql_in(PayoutModel)})",
            name="valid_payout_model",
        ),
        CheckConstraint("total_credited >= 0", name="non_negative_credit"),
    )

    def __repr__(self) -> str:
        return f"<Settlement {self.topic_id}: {self.correct_choice!r} ({self.total_credited} credited)>"
