"""Caller identity as supplied by the authentication layer."""

from typing import Optional

from pydantic import BaseModel

from clutch.config import get_settings
from clutch.exceptions import Forbidden


class Actor(BaseModel):
    """The user performing an operation. Trusted as given."""

    user_id: int
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role in get_settings().api.admin_roles


def require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise Forbidden(f"Only admins can {action}")


def require_topic_privilege(actor: Actor, created_by: Optional[int], action: str) -> None:
    """Topic creator or an administrator."""
    if actor.is_admin or (created_by is not None and actor.user_id == created_by):
        return
    raise Forbidden(f"Only the topic creator or an admin can {action}")
