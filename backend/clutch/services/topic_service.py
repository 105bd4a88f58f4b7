"""Topic creation, lookup, lifecycle transitions and statistics."""

import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clutch.config import get_settings
from clutch.database import run_in_transaction, utcnow
from clutch.exceptions import InvalidStateTransition, NotFound, ValidationError
from clutch.models import Participation, Topic, TopicStatus, TopicType
from clutch.schemas.topic import OptionStats, TopicStats
from clutch.services.authorization import Actor, require_admin, require_topic_privilege
from clutch.services.identity import generate_topic_id, is_anonymous_identity

logger = logging.getLogger(__name__)

# Matches the width of the choice columns
MAX_OPTION_LENGTH = 128

# new status -> statuses it may be reached from
ALLOWED_TRANSITIONS: dict[TopicStatus, tuple[TopicStatus, ...]] = {
    TopicStatus.CLOSED: (TopicStatus.ACTIVE,),
    TopicStatus.REVEALED: (TopicStatus.ACTIVE, TopicStatus.CLOSED),
}


def validate_options(options: Any) -> list[str]:
    """At least two distinct, non-empty strings of bounded length, order preserved."""
    if not isinstance(options, (list, tuple)):
        raise ValidationError("Options must be a list of strings")
    if not all(isinstance(o, str) and o.strip() for o in options):
        raise ValidationError("Options must be non-empty strings")
    if any(len(o) > MAX_OPTION_LENGTH for o in options):
        raise ValidationError(f"Options must be at most {MAX_OPTION_LENGTH} characters")
    if len(set(options)) != len(options):
        raise ValidationError("Options must be distinct")
    if len(options) < 2:
        raise ValidationError("A topic needs at least two distinct options")
    return list(options)


class TopicService:
    """
    Owns topic definitions and their lifecycle.

    Status only moves forward: active -> closed -> revealed, with closed
    optional. Transitions are conditional UPDATEs so two callers can never
    both move a topic out of the same state.
    """

    async def create(
        self,
        db: AsyncSession,
        actor: Actor,
        topic_type: TopicType | str,
        title: str,
        options: list[str],
        description: Optional[str] = None,
        reveal_at: Optional[datetime] = None,
        match_id: Optional[int] = None,
        metadata: Optional[dict] = None,
    ) -> Topic:
        """Create a new active topic. Admin only."""
        require_admin(actor, "create topics")

        try:
            topic_type = TopicType(topic_type)
        except ValueError:
            raise ValidationError(f"Unknown topic type: {topic_type}")
        if not title or not title.strip():
            raise ValidationError("Title is required")
        options = validate_options(options)

        metadata = dict(metadata or {})
        if topic_type == TopicType.MISSION:
            reward = metadata.get("reward_points", get_settings().missions.default_reward)
            if not isinstance(reward, int) or isinstance(reward, bool) or reward < 1:
                raise ValidationError("Mission reward_points must be a positive whole number")
            metadata["reward_points"] = reward

        topic = Topic(
            topic_id=generate_topic_id(),
            match_id=match_id,
            topic_type=topic_type.value,
            title=title.strip(),
            description=description,
            options=options,
            status=TopicStatus.ACTIVE.value,
            reveal_at=reveal_at,
            created_by=actor.user_id,
            topic_metadata=metadata,
        )

        async def _op() -> Topic:
            db.add(topic)
            await db.flush()
            return topic

        await run_in_transaction(db, _op, "create topic")
        logger.info(
            f"Created {topic.topic_type} topic {topic.topic_id} "
            f"({len(options)} options) by user {actor.user_id}"
        )
        return topic

    async def find(self, db: AsyncSession, topic_id: str) -> Optional[Topic]:
        result = await db.execute(
            select(Topic)
            .where(Topic.topic_id == topic_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get(self, db: AsyncSession, topic_id: str) -> Topic:
        """Fetch a topic or raise NotFound."""
        topic = await self.find(db, topic_id)
        if topic is None:
            raise NotFound(f"Topic {topic_id} not found")
        return topic

    async def transition_status(
        self, db: AsyncSession, topic_id: str, new_status: TopicStatus | str
    ) -> Topic:
        """Move a topic forward in its lifecycle."""

        async def _op() -> Topic:
            await self._transition(db, topic_id, new_status)
            return await self.get(db, topic_id)

        return await run_in_transaction(db, _op, f"transition {topic_id}")

    async def close(self, db: AsyncSession, topic_id: str, actor: Actor) -> Topic:
        """Stop accepting participation. Topic creator or admin."""
        topic = await self.get(db, topic_id)
        require_topic_privilege(actor, topic.created_by, "close topics")
        topic = await self.transition_status(db, topic_id, TopicStatus.CLOSED)
        logger.info(f"Closed topic {topic_id} by user {actor.user_id}")
        return topic

    async def list_active(
        self, db: AsyncSession, match_id: Optional[int] = None
    ) -> list[Topic]:
        """All active topics, most recent first."""
        return await self.list_topics(db, status=TopicStatus.ACTIVE, match_id=match_id)

    async def list_topics(
        self,
        db: AsyncSession,
        status: Optional[TopicStatus | str] = None,
        topic_type: Optional[TopicType | str] = None,
        match_id: Optional[int] = None,
    ) -> list[Topic]:
        """Topics filtered by status, type and match, most recent first."""
        query = select(Topic)

        if status:
            query = query.where(Topic.status == TopicStatus(status).value)
        if topic_type:
            query = query.where(Topic.topic_type == TopicType(topic_type).value)
        if match_id is not None:
            query = query.where(Topic.match_id == match_id)

        query = query.order_by(Topic.created_at.desc(), Topic.id.desc())
        result = await db.execute(query)
        return list(result.scalars().all())

    async def stats(self, db: AsyncSession, topic_id: str) -> TopicStats:
        """Per-option vote counts, staked points and vote percentages."""
        topic = await self.get(db, topic_id)
        result = await db.execute(
            select(Participation).where(Participation.topic_id == topic_id)
        )
        return build_stats(topic, result.scalars().all())

    # ------------------------------------------------------------------
    # Transaction participants
    # ------------------------------------------------------------------

    async def _transition(
        self,
        db: AsyncSession,
        topic_id: str,
        new_status: TopicStatus | str,
        **values: Any,
    ) -> None:
        """Conditional status UPDATE; raises when the row was not in a source state."""
        try:
            new_status = TopicStatus(new_status)
        except ValueError:
            raise ValidationError(f"Unknown topic status: {new_status}")

        sources = ALLOWED_TRANSITIONS.get(new_status)
        if not sources:
            raise InvalidStateTransition(f"Topics cannot move back to {new_status.value}")

        changed = await self.compare_and_set_status(db, topic_id, sources, new_status, **values)
        if not changed:
            topic = await self.get(db, topic_id)
            raise InvalidStateTransition(
                f"Topic {topic_id} cannot move from {topic.status} to {new_status.value}"
            )

    async def compare_and_set_status(
        self,
        db: AsyncSession,
        topic_id: str,
        sources: Iterable[TopicStatus],
        new_status: TopicStatus,
        **values: Any,
    ) -> bool:
        result = await db.execute(
            update(Topic)
            .where(
                Topic.topic_id == topic_id,
                Topic.status.in_([s.value for s in sources]),
            )
            .values(status=new_status.value, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


def build_stats(topic: Topic, participations: Iterable[Participation]) -> TopicStats:
    participations = list(participations)
    total_votes = len(participations)
    total_points = sum(p.stake or 0 for p in participations)

    choice_stats = []
    for option in topic.options:
        chosen = [p for p in participations if p.choice == option]
        choice_stats.append(
            OptionStats(
                choice=option,
                votes=len(chosen),
                points=sum(p.stake or 0 for p in chosen),
                percentage=round(len(chosen) / total_votes * 100, 1) if total_votes else 0.0,
            )
        )

    return TopicStats(
        topic_id=topic.topic_id,
        status=topic.status,
        total_votes=total_votes,
        total_points=total_points,
        choice_stats=choice_stats,
        is_anonymous=any(is_anonymous_identity(p.voter_identity) for p in participations),
    )


# Singleton instance
topic_service = TopicService()
