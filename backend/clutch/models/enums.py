"""
Enums shared by models, schemas and services.

Columns store the plain string values; CheckConstraints on the tables keep
them within these sets.
"""

from enum import Enum


class TopicType(str, Enum):
    """How participation in a topic is rewarded."""

    BET = "bet"  # Stake required, pooled payout
    VOTE = "vote"  # No stake, informational
    MISSION = "mission"  # No stake, flat reward on success


class TopicStatus(str, Enum):
    """Topic lifecycle. REVEALED is terminal."""

    ACTIVE = "active"
    CLOSED = "closed"
    REVEALED = "revealed"


class LedgerCause(str, Enum):
    """Why a points delta was applied."""

    GRANT = "grant"
    STAKE = "stake"
    PAYOUT = "payout"
    MISSION_REWARD = "mission_reward"
    ADJUSTMENT = "adjustment"


class PayoutModel(str, Enum):
    """Settlement payout model."""

    POOL = "pool"  # Pari-mutuel: winners split every stake
    FLAT = "flat"  # Fixed reward per successful participant


def sql_in(enum_cls: type[Enum]) -> str:
    """Render enum values for a CheckConstraint IN clause."""
    return ", ".join(f"'{member.value}'" for member in enum_cls)
