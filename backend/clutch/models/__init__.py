"""Database models module."""

from clutch.models.enums import LedgerCause, PayoutModel, TopicStatus, TopicType
from clutch.models.participation import Participation
from clutch.models.points import LedgerEntry, PointAccount
from clutch.models.settlement import Settlement
from clutch.models.topic import Topic

__all__ = [
    "LedgerCause",
    "LedgerEntry",
    "Participation",
    "PayoutModel",
    "PointAccount",
    "Settlement",
    "Topic",
    "TopicStatus",
    "TopicType",
]
