"""Services module."""

from clutch.services.authorization import Actor
from clutch.services.participation_service import participation_service
from clutch.services.points_ledger import points_ledger
from clutch.services.settlement_service import settlement_service
from clutch.services.topic_service import topic_service

__all__ = [
    "Actor",
    "participation_service",
    "points_ledger",
    "settlement_service",
    "topic_service",
]
