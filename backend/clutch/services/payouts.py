"""
Payout Calculator

Pure payout computation for topic settlement.

Formulas:
- Pooled (bet, vote): total_pool = sum of every stake on the topic,
                      winning_pool = sum of stakes on the correct choice,
                      credit = floor(stake * total_pool / winning_pool)
- No winning stake:   nothing is credited and nothing is refunded
- Mission:            every participant on the successful outcome gets
                      the flat reward; no pool exists
"""

from typing import Iterable, Protocol

from pydantic import BaseModel, Field

from clutch.models.enums import PayoutModel, TopicType


class StakeLike(Protocol):
    id: int
    user_id: int
    choice: str
    stake: int


class Credit(BaseModel):
    """Points owed to one participant."""

    participation_id: int
    user_id: int
    amount: int


class PayoutPlan(BaseModel):
    """Everything settlement needs to credit winners."""

    payout_model: PayoutModel
    total_pool: int = 0
    winning_pool: int = 0
    credits: list[Credit] = Field(default_factory=list)

    @property
    def total_credited(self) -> int:
        return sum(c.amount for c in self.credits)


def compute_pool_payouts(
    participations: Iterable[StakeLike], correct_choice: str
) -> PayoutPlan:
    """Pari-mutuel split of every stake among those who picked correct_choice."""
    participations = list(participations)
    total_pool = sum(p.stake or 0 for p in participations)
    winners = [p for p in participations if p.choice == correct_choice]
    winning_pool = sum(p.stake or 0 for p in winners)

    plan = PayoutPlan(
        payout_model=PayoutModel.POOL,
        total_pool=total_pool,
        winning_pool=winning_pool,
    )
    if winning_pool <= 0:
        return plan

    for p in winners:
        # Integer floor of stake / winning_pool * total_pool
        amount = (p.stake or 0) * total_pool // winning_pool
        if amount > 0:
            plan.credits.append(
                Credit(participation_id=p.id, user_id=p.user_id, amount=amount)
            )
    return plan


def compute_mission_payouts(
    participations: Iterable[StakeLike], successful_choice: str, reward: int
) -> PayoutPlan:
    """Flat reward to every participant whose choice matches the outcome."""
    plan = PayoutPlan(payout_model=PayoutModel.FLAT)
    if reward <= 0:
        return plan

    for p in participations:
        if p.choice == successful_choice:
            plan.credits.append(
                Credit(participation_id=p.id, user_id=p.user_id, amount=reward)
            )
    return plan


def compute_payouts(
    topic_type: str,
    participations: Iterable[StakeLike],
    correct_choice: str,
    mission_reward: int,
) -> PayoutPlan:
    """Dispatch on topic type. Missions never use the pooled formula."""
    if topic_type == TopicType.MISSION:
        return compute_mission_payouts(participations, correct_choice, mission_reward)
    return compute_pool_payouts(participations, correct_choice)
