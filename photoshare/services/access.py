"""
Ownership and role predicates shared by every mutating endpoint.
"""
from enum import Enum
from typing import Optional

from photoshare.errors import Forbidden
from photoshare.models.user import User


class CallerKind(str, Enum):
    ANONYMOUS = "anonymous"
    OWNER = "owner"
    OTHER_USER = "other_user"
    ADMIN = "admin"


def classify_caller(caller: Optional[User], owner_id: Optional[int]) -> CallerKind:
    """Where the caller stands relative to an entity owned by ``owner_id``.

    Ownership wins over the admin role, so an admin looking at their own
    post is an owner.
    """
    if caller is None:
        return CallerKind.ANONYMOUS
    if owner_id is not None and caller.id == owner_id:
        return CallerKind.OWNER
    if caller.is_admin:
        return CallerKind.ADMIN
    return CallerKind.OTHER_USER


def is_owner(caller: Optional[User], owner_id: Optional[int]) -> bool:
    return classify_caller(caller, owner_id) is CallerKind.OWNER


def authorize(caller: Optional[User], owner_id: Optional[int], allow_admin: bool = True) -> bool:
    """Owner may act; admins too unless the action is owner-only (edits)."""
    kind = classify_caller(caller, owner_id)
    if kind is CallerKind.OWNER:
        return True
    return allow_admin and kind is CallerKind.ADMIN


def ensure_authorized(
    caller: Optional[User],
    owner_id: Optional[int],
    message: str,
    allow_admin: bool = True,
) -> None:
    if not authorize(caller, owner_id, allow_admin=allow_admin):
        raise Forbidden(message)
