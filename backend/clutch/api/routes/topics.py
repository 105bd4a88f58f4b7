"""Topics API routes."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clutch.api.dependencies import get_actor, get_db
from clutch.exceptions import NotFound
from clutch.models import TopicStatus, TopicType
from clutch.schemas import (
    ErrorResponse,
    ParticipationCreate,
    ParticipationResponse,
    SettlementRecordResponse,
    SettlementResult,
    SettleRequest,
    TopicCreate,
    TopicResponse,
    TopicStats,
)
from clutch.services import (
    Actor,
    participation_service,
    settlement_service,
    topic_service,
)

router = APIRouter(
    prefix="/topics",
    tags=["Topics"],
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)


@router.get("/", response_model=list[TopicResponse])
async def list_topics(
    status: Optional[TopicStatus] = None,
    topic_type: Optional[TopicType] = None,
    match_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    """List topics with optional filters."""
    return await topic_service.list_topics(
        db, status=status, topic_type=topic_type, match_id=match_id
    )


@router.get("/active", response_model=list[TopicResponse])
async def list_active_topics(
    match_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    """Get topics currently accepting participation, most recent first."""
    return await topic_service.list_active(db, match_id=match_id)


@router.get("/{topic_id}", response_model=TopicResponse)
async def get_topic(topic_id: str, db: AsyncSession = Depends(get_db)):
    """Get topic details."""
    return await topic_service.get(db, topic_id)


@router.post("/", response_model=TopicResponse, status_code=201)
async def create_topic(
    payload: TopicCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Create a topic (admin only)."""
    return await topic_service.create(
        db,
        actor,
        topic_type=payload.topic_type,
        title=payload.title,
        options=payload.options,
        description=payload.description,
        reveal_at=payload.reveal_at,
        match_id=payload.match_id,
        metadata=payload.metadata,
    )


@router.post(
    "/{topic_id}/participations",
    response_model=ParticipationResponse,
    status_code=201,
)
async def submit_participation(
    topic_id: str,
    payload: ParticipationCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Vote on a topic, staking points when it is a bet."""
    return await participation_service.submit(
        db,
        topic_id,
        actor.user_id,
        payload.choice,
        stake=payload.points,
        anonymous=payload.is_anonymous,
    )


@router.get("/{topic_id}/participations", response_model=list[ParticipationResponse])
async def list_participations(topic_id: str, db: AsyncSession = Depends(get_db)):
    """Get all participations on a topic, identified by voter identity only."""
    await topic_service.get(db, topic_id)
    return await participation_service.list_by_topic(db, topic_id)


@router.get("/{topic_id}/stats", response_model=TopicStats)
async def get_topic_stats(topic_id: str, db: AsyncSession = Depends(get_db)):
    """Get per-option vote and point totals."""
    return await topic_service.stats(db, topic_id)


@router.post("/{topic_id}/close", response_model=TopicResponse)
async def close_topic(
    topic_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Stop accepting participation ahead of the reveal."""
    return await topic_service.close(db, topic_id, actor)


@router.post("/{topic_id}/settle", response_model=SettlementResult)
async def settle_topic(
    topic_id: str,
    payload: SettleRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Declare the outcome, pay the winners and reveal the topic."""
    result = await settlement_service.settle(db, topic_id, payload.correct_choice, actor)
    return result.redacted()


@router.get("/{topic_id}/settlement", response_model=SettlementRecordResponse)
async def get_topic_settlement(topic_id: str, db: AsyncSession = Depends(get_db)):
    """Get the recorded settlement of a revealed topic."""
    settlement = await settlement_service.get_settlement(db, topic_id)

    if not settlement:
        raise NotFound(f"Topic {topic_id} has no settlement")

    return settlement
