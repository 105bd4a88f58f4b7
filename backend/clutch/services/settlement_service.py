"""Topic settlement: declare the outcome, pay winners, reveal the topic."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clutch.config import get_settings
from clutch.database import run_in_transaction, utcnow
from clutch.exceptions import AlreadySettled, InvalidChoice
from clutch.models import (
    LedgerCause,
    PayoutModel,
    Settlement,
    TopicStatus,
)
from clutch.schemas.settlement import PayoutResult, SettlementResult
from clutch.services.authorization import Actor, require_topic_privilege
from clutch.services.participation_service import participation_service
from clutch.services.payouts import compute_payouts
from clutch.services.points_ledger import FIRST_WIN_BADGE, points_ledger
from clutch.services.topic_service import build_stats, topic_service

logger = logging.getLogger(__name__)


class SettlementService:
    """
    Exactly-once settlement of a topic.

    The status flip to revealed is a compare-and-swap from active/closed, and
    it shares one transaction with every payout credit and the settlement
    record. Either the topic is revealed with all winners paid, or nothing
    changed at all.

    Payout models:
    - bet/vote: pari-mutuel. Winners split the whole pool in proportion to
      their stake. When nobody staked on the correct choice, nothing is
      credited and nothing is refunded.
    - mission: flat reward (topic metadata reward_points) to every
      participant on the successful outcome.
    """

    async def settle(
        self,
        db: AsyncSession,
        topic_id: str,
        correct_choice: str,
        actor: Actor,
    ) -> SettlementResult:
        """
        Process settlement for a topic.

        Process:
        1. Authorize the actor (topic creator or admin)
        2. Reject topics that are already revealed
        3. Validate the declared outcome against the live options
        4. Flip status to revealed
        5. Compute and credit payouts
        6. Record the settlement and return its summary
        """

        async def _op() -> SettlementResult:
            topic = await topic_service.get(db, topic_id)
            require_topic_privilege(actor, topic.created_by, "settle topics")

            if topic.status == TopicStatus.REVEALED.value:
                raise AlreadySettled(f"Topic {topic_id} already settled")

            if correct_choice not in topic.options:
                raise InvalidChoice(f"{correct_choice!r} is not an option of topic {topic_id}")

            settled_at = utcnow()
            claimed = await topic_service.compare_and_set_status(
                db,
                topic_id,
                (TopicStatus.ACTIVE, TopicStatus.CLOSED),
                TopicStatus.REVEALED,
                correct_choice=correct_choice,
                revealed_at=settled_at,
            )
            if not claimed:
                raise AlreadySettled(f"Topic {topic_id} already settled")

            topic = await topic_service.get(db, topic_id)
            participations = await participation_service.list_by_topic(db, topic_id)

            reward = topic.reward_points or get_settings().missions.default_reward
            plan = compute_payouts(topic.topic_type, participations, correct_choice, reward)
            cause = (
                LedgerCause.MISSION_REWARD
                if plan.payout_model == PayoutModel.FLAT
                else LedgerCause.PAYOUT
            )

            credited: dict[int, int] = {}
            for credit in plan.credits:
                await points_ledger.record_delta(
                    db,
                    credit.user_id,
                    credit.amount,
                    cause,
                    reference_id=topic_id,
                    description=f"{topic.title}: {correct_choice}",
                )
                await points_ledger.award_badge(db, credit.user_id, FIRST_WIN_BADGE)
                credited[credit.participation_id] = credit.amount

            payouts = []
            for p in participations:
                p.payout = credited.get(p.id, 0)
                p.revealed_at = settled_at
                if p.id in credited:
                    payouts.append(
                        PayoutResult(
                            user_id=p.user_id,
                            voter_identity=p.voter_identity,
                            is_anonymous=p.is_anonymous,
                            choice=p.choice,
                            stake=p.stake,
                            amount=credited[p.id],
                        )
                    )

            db.add(
                Settlement(
                    topic_id=topic_id,
                    correct_choice=correct_choice,
                    settled_by=actor.user_id,
                    payout_model=plan.payout_model.value,
                    total_pool=plan.total_pool,
                    winning_pool=plan.winning_pool,
                    total_credited=plan.total_credited,
                    winner_count=len(plan.credits),
                    settled_at=settled_at,
                )
            )
            await db.flush()

            return SettlementResult(
                topic_id=topic_id,
                topic_type=topic.topic_type,
                correct_choice=correct_choice,
                settled_by=actor.user_id,
                payout_model=plan.payout_model,
                total_pool=plan.total_pool,
                winning_pool=plan.winning_pool,
                total_credited=plan.total_credited,
                choice_stats=build_stats(topic, participations).choice_stats,
                payouts=payouts,
                settled_at=settled_at,
            )

        result = await run_in_transaction(db, _op, f"settle {topic_id}")

        if result.payout_model == PayoutModel.POOL and result.winning_pool == 0:
            logger.info(
                f"Settled topic {topic_id}: {correct_choice!r} had no stakes, "
                f"pool of {result.total_pool} is not redistributed"
            )
        else:
            logger.info(
                f"Settled topic {topic_id}: {correct_choice!r} "
                f"({len(result.payouts)} winners, {result.total_credited}/{result.total_pool} points)"
            )
        return result

    async def get_settlement(
        self, db: AsyncSession, topic_id: str
    ) -> Optional[Settlement]:
        """Get settlement for a topic."""
        result = await db.execute(
            select(Settlement).where(Settlement.topic_id == topic_id)
        )
        return result.scalar_one_or_none()


# Singleton instance
settlement_service = SettlementService()
