"""Vote and stake submission and participation lookups."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clutch.database import run_in_transaction
from clutch.exceptions import (
    AlreadyParticipated,
    InvalidChoice,
    TopicNotActive,
    ValidationError,
)
from clutch.models import LedgerCause, Participation, TopicStatus, TopicType
from clutch.services.identity import voter_identity
from clutch.services.points_ledger import points_ledger
from clutch.services.topic_service import topic_service

logger = logging.getLogger(__name__)


class ParticipationService:
    """
    One participation per (user, topic).

    The pre-insert check gives a friendly error in the common case; the
    unique constraint on (topic_id, user_id) is what actually guarantees it
    when two submissions race. A losing racer's whole unit of work, stake
    debit included, is rolled back.
    """

    async def submit(
        self,
        db: AsyncSession,
        topic_id: str,
        user_id: int,
        choice: str,
        stake: Optional[int] = None,
        anonymous: bool = False,
    ) -> Participation:
        """
        Record a vote or stake.

        Process:
        1. Validate topic state, choice and stake
        2. For bets, debit the stake (fails if the balance is too low)
        3. Insert the participation record
        """

        async def _op() -> Participation:
            topic = await topic_service.get(db, topic_id)

            if topic.status != TopicStatus.ACTIVE.value:
                raise TopicNotActive(f"Topic {topic_id} is not active")

            if choice not in topic.options:
                raise InvalidChoice(f"{choice!r} is not an option of topic {topic_id}")

            if topic.topic_type == TopicType.BET.value:
                if not isinstance(stake, int) or isinstance(stake, bool) or stake < 1:
                    raise ValidationError("Points are required for bets")
                amount = stake
            else:
                if stake:
                    raise ValidationError(f"{topic.topic_type} topics do not accept stakes")
                amount = 0

            if await self.has_participated(db, user_id, topic_id):
                raise AlreadyParticipated("You have already participated in this topic")

            if amount:
                await points_ledger.record_delta(
                    db,
                    user_id,
                    -amount,
                    LedgerCause.STAKE,
                    reference_id=topic_id,
                    description=f"Stake on {choice!r}",
                    require_funds=True,
                )
            await points_ledger.extend_streak(db, user_id)

            participation = Participation(
                topic_id=topic_id,
                user_id=user_id,
                voter_identity=voter_identity(user_id, topic_id, anonymous),
                is_anonymous=anonymous,
                choice=choice,
                stake=amount,
                topic_type=topic.topic_type,
                title=topic.title,
                options=list(topic.options),
                match_id=topic.match_id,
            )
            db.add(participation)
            try:
                await db.flush()
            except IntegrityError as e:
                raise AlreadyParticipated(
                    "You have already participated in this topic"
                ) from e
            return participation

        participation = await run_in_transaction(db, _op, f"submit to {topic_id}")
        logger.info(
            f"Recorded {participation.topic_type} participation on {topic_id}: "
            f"{participation.voter_identity} -> {choice!r} (stake {participation.stake})"
        )
        return participation

    async def has_participated(
        self, db: AsyncSession, user_id: int, topic_id: str
    ) -> bool:
        result = await db.execute(
            select(Participation.id).where(
                Participation.topic_id == topic_id,
                Participation.user_id == user_id,
            )
        )
        return result.first() is not None

    async def list_by_topic(self, db: AsyncSession, topic_id: str) -> list[Participation]:
        """All participations on a topic, oldest first."""
        result = await db.execute(
            select(Participation)
            .where(Participation.topic_id == topic_id)
            .order_by(Participation.created_at, Participation.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_by_user(self, db: AsyncSession, user_id: int) -> list[Participation]:
        """A user's participation history, most recent first."""
        result = await db.execute(
            select(Participation)
            .where(Participation.user_id == user_id)
            .order_by(Participation.created_at.desc(), Participation.id.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())


# Singleton instance
participation_service = ParticipationService()
