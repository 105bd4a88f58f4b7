"""Current-user API routes: own participations and points."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clutch.api.dependencies import get_actor, get_db
from clutch.schemas import LedgerEntryResponse, MyParticipationResponse, PointsResponse
from clutch.services import Actor, participation_service, points_ledger

router = APIRouter(prefix="/me", tags=["Me"])


@router.get("/participations", response_model=list[MyParticipationResponse])
async def get_my_participations(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Get the caller's participation history, most recent first."""
    return await participation_service.list_by_user(db, actor.user_id)


@router.get("/points", response_model=PointsResponse)
async def get_my_points(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Get the caller's balance, streak and badges."""
    account = await points_ledger.ensure_account(db, actor.user_id)

    return PointsResponse(
        user_id=account.user_id,
        points=account.balance,
        streak=account.streak,
        badges=account.badges or [],
    )


@router.get("/points/history", response_model=list[LedgerEntryResponse])
async def get_my_points_history(
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Get the caller's ledger entries, most recent first."""
    return await points_ledger.history(db, actor.user_id, limit=limit)
