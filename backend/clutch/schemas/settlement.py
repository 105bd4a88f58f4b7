"""Settlement Pydantic schemas."""

from datetime import datetime
from typing import Optional

from clutch.models.enums import PayoutModel
from clutch.schemas.common import BaseSchema
from clutch.schemas.topic import OptionStats


class SettleRequest(BaseSchema):
    """Declared outcome for a topic."""

    correct_choice: str


class PayoutResult(BaseSchema):
    """Points credited to one participant."""

    user_id: Optional[int]  # None once redacted for an anonymous participant
    voter_identity: str
    is_anonymous: bool = False
    choice: str
    stake: int
    amount: int


class SettlementResult(BaseSchema):
    """Complete, attributable summary of one settlement."""

    topic_id: str
    topic_type: str
    correct_choice: str
    settled_by: int
    payout_model: PayoutModel
    total_pool: int
    winning_pool: int
    total_credited: int
    choice_stats: list[OptionStats]
    payouts: list[PayoutResult]
    settled_at: datetime

    def redacted(self) -> "SettlementResult":
        """Copy safe to show other participants: anonymous payouts lose their user id."""
        payouts = [
            p.model_copy(update={"user_id": None}) if p.is_anonymous else p
            for p in self.payouts
        ]
        return self.model_copy(update={"payouts": payouts})


class SettlementRecordResponse(BaseSchema):
    """Persisted settlement row."""

    topic_id: str
    correct_choice: str
    settled_by: int
    payout_model: PayoutModel
    total_pool: int
    winning_pool: int
    total_credited: int
    winner_count: int
    settled_at: datetime
