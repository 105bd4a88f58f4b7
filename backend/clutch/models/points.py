"""Points account and ledger database models."""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from clutch.database.base import Base, TimestampMixin, utcnow
from clutch.models.enums import LedgerCause, sql_in


class PointAccount(Base, TimestampMixin):
    """Running balance per user. Derived from the ledger, kept for fast reads."""

    __tablename__ = "point_accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, unique=True)
    balance = Column(Integer, nullable=False, default=0)
    streak = Column(Integer, nullable=False, default=0)
    badges = Column(JSON, nullable=False, default=list)

    __table_args__ = (
        CheckConstraint("balance >= 0", name="non_negative_balance"),
    )

    def __repr__(self) -> str:
        return f"<PointAccount user={self.user_id} balance={self.balance}>"


class LedgerEntry(Base):
    """
    Append-only record of a single signed delta.

    (user_id, cause, reference_id) is unique, so replaying the same
    attributable delta cannot apply it twice.
    """

    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False)
    cause = Column(String(32), nullable=False)
    reference_id = Column(String(128), nullable=True)

    requested_delta = Column(Integer, nullable=False)
    applied_delta = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "cause", "reference_id", name="uq_ledger_attribution"),
        CheckConstraint(f"cause IN ({sql_in(LedgerCause)})", name="valid_ledger_cause"),
        CheckConstraint("balance_after >= 0", name="non_negative_balance_after"),
        Index("idx_ledger_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<LedgerEntry user={self.user_id} {self.cause} {self.applied_delta:+d}>"
