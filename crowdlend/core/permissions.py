import enum
from typing import Iterable


class UserRole(str, enum.Enum):
    """Role tags carried by every user"""
    ADMIN = "ADMIN"
    CAMPAIGN_CREATOR = "CAMPAIGN_CREATOR"
    LENDER = "LENDER"
    BORROWER = "BORROWER"


def _tags(roles: Iterable) -> set:
    return {r.value if isinstance(r, enum.Enum) else str(r) for r in roles or ()}


def has_any_role(actor_roles: Iterable, required_roles: Iterable) -> bool:
    """True when the actor's role set intersects the required set"""
    return bool(_tags(actor_roles) & _tags(required_roles))
