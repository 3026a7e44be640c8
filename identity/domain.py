"""Defines the core data structures for the identity service."""

from enum import Enum
from typing import NamedTuple, Optional, List
from datetime import datetime


PLANS = ['FREE', 'PRO', 'ENTERPRISE']
"""Plans a user may be on. New accounts start on ``FREE``."""


class User(NamedTuple):
    """A user account, as held in the system of record."""

    user_id: str
    email: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    plan: str = 'FREE'
    addons: Optional[List[str]] = None
    created: Optional[datetime] = None
    updated: Optional[datetime] = None

    def to_projection(self) -> 'UserProjection':
        """The subset of user data shared with other services."""
        return UserProjection(
            id=self.user_id,
            name=self.name,
            email=self.email,
            avatar=self.avatar,
            plan=self.plan
        )


class UserProjection(NamedTuple):
    """
    Internal view of a user, served to other services.

    This is what gets cached under ``user:{id}``. It is never authoritative.
    """

    id: str
    name: Optional[str]
    email: str
    avatar: Optional[str]
    plan: str


class DebtStatus(Enum):
    """Outcome of asking the expenses service whether a user may be deleted."""

    ALLOWED = 'allowed'
    BLOCKED = 'blocked'
    UNKNOWN = 'unknown'
    """The expenses service could not tell us; treated as blocked."""


class LocalDeleteResult(Enum):
    """Outcome of removing the user from the system of record."""

    DELETED = 'deleted'
    NOT_FOUND = 'not-found'


class CleanupResult(Enum):
    """Outcome of the analytics cleanup; resolves after the response."""

    PENDING = 'pending'
    OK = 'ok'
    FAILED = 'failed'


class DeletionOutcome(NamedTuple):
    """Record of a single account deletion attempt."""

    user_id: str
    debt_check: DebtStatus
    local_delete: Optional[LocalDeleteResult] = None
    remote_cleanup: Optional[CleanupResult] = None
