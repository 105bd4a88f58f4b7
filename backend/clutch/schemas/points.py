"""Points Pydantic schemas."""

from datetime import datetime
from typing import Optional

from clutch.models.enums import LedgerCause
from clutch.schemas.common import BaseSchema


class PointsResponse(BaseSchema):
    """Current balance and account extras."""

    user_id: int
    points: int
    streak: int = 0
    badges: list[str] = []


class LedgerEntryResponse(BaseSchema):
    """One recorded delta."""

    cause: LedgerCause
    reference_id: Optional[str]
    requested_delta: int
    applied_delta: int
    balance_after: int
    description: Optional[str]
    created_at: datetime
