"""Identifier generation and participant anonymization."""

import hashlib
import hmac
import time
from uuid import uuid4

from clutch.config import get_settings

PSEUDONYM_PREFIX = "user_"
ANONYMOUS_PREFIX = "anon_"


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def generate_topic_id() -> str:
    """Generate unique topic ID with topic_ prefix."""
    return f"topic_{_timestamp_ms()}_{uuid4().hex[:9]}"


def pseudonymous_identity(user_id: int, topic_id: str) -> str:
    """
    Stable identity for a non-anonymous participant.

    Deterministic in (user_id, topic_id) and one-way: the same user always
    maps to the same pseudonym within a topic, different pseudonyms across
    topics, and the user id cannot be recovered without the secret.
    """
    secret = get_settings().identity.secret.encode("utf-8")
    digest = hmac.new(
        secret, f"{user_id}:{topic_id}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"{PSEUDONYM_PREFIX}{digest[:24]}"


def ephemeral_identity() -> str:
    """Random one-off identity for an anonymous participant."""
    return f"{ANONYMOUS_PREFIX}{_timestamp_ms()}_{uuid4().hex[:9]}"


def voter_identity(user_id: int, topic_id: str, anonymous: bool) -> str:
    if anonymous:
        return ephemeral_identity()
    return pseudonymous_identity(user_id, topic_id)


def is_anonymous_identity(identity: str) -> bool:
    return identity.startswith(ANONYMOUS_PREFIX)
