"""
Account deletion.

Deleting an account touches three services, with no distributed transaction
between them:

1. The expenses service is asked whether the user still owes anything. This
   is read-only. If the answer is "yes" or "don't know", we stop here and
   nothing has changed.
2. The user is removed from the system of record, and their cache entry is
   dropped.
3. The analytics cleanup is queued for the worker. We do not wait for it. If it
   fails, the analytics service keeps stale data and a consistency alert is
   logged; the account stays deleted.
"""

from typing import Callable, Optional

from .. import logging
from ..domain import CleanupResult, DebtStatus, DeletionOutcome, \
    LocalDeleteResult
from ..services import cache, expenses, users
from ..services.exceptions import NoSuchUser
from .. import tasks

logger = logging.getLogger(__name__)


class DeletionFailed(RuntimeError):
    """The account was not deleted."""

    def __init__(self, message: str, outcome: DeletionOutcome) -> None:
        super(DeletionFailed, self).__init__(message)
        self.outcome = outcome


class DeletionBlocked(DeletionFailed):
    """The user has open financial records."""


class DebtStatusUnavailable(DeletionFailed):
    """Could not find out whether the user has open financial records."""


class NoSuchAccount(DeletionFailed, NoSuchUser):
    """There was no account to delete."""


class DeletionSaga(object):
    """
    Runs the steps of an account deletion, in order.

    Each step is a callable, so that the saga can be driven without any of the
    real services.
    """

    def __init__(self, check_debt: Callable[[str], DebtStatus],
                 delete_local: Callable[[str], bool],
                 schedule_cleanup: Callable[[str], CleanupResult],
                 evict: Optional[Callable[[str], None]] = None) -> None:
        self.check_debt = check_debt
        self.delete_local = delete_local
        self.schedule_cleanup = schedule_cleanup
        self.evict = evict

    def delete_account(self, user_id: str) -> DeletionOutcome:
        """
        Delete a user account.

        Parameters
        ----------
        user_id : str

        Returns
        -------
        :class:`.DeletionOutcome`
            ``remote_cleanup`` is ``PENDING`` unless the cleanup could not even
            be queued.

        Raises
        ------
        :class:`.DeletionBlocked`
            If the user has outstanding debts. Nothing was deleted.
        :class:`.DebtStatusUnavailable`
            If the expenses service could not give an answer. Nothing was
            deleted.
        :class:`.NoSuchAccount`
            If there was no such user.
        """
        debt = self.check_debt(user_id)
        outcome = DeletionOutcome(user_id=user_id, debt_check=debt)
        if debt is DebtStatus.BLOCKED:
            logger.info('Deletion of %s blocked by outstanding debts', user_id)
            raise DeletionBlocked('User has outstanding debts', outcome)
        if debt is not DebtStatus.ALLOWED:
            logger.error('Deletion of %s refused; debt status unknown',
                         user_id)
            raise DebtStatusUnavailable('Could not verify debt status',
                                        outcome)

        if not self.delete_local(user_id):
            outcome = outcome._replace(
                local_delete=LocalDeleteResult.NOT_FOUND
            )
            raise NoSuchAccount(f'No user with id {user_id}', outcome)
        outcome = outcome._replace(local_delete=LocalDeleteResult.DELETED)
        logger.info('Deleted user %s', user_id)

        if self.evict is not None:
            self.evict(user_id)

        outcome = outcome._replace(
            remote_cleanup=self.schedule_cleanup(user_id)
        )
        return outcome


def delete_account(user_id: str) -> DeletionOutcome:
    """Delete a user account using the application's services."""
    saga = DeletionSaga(expenses.debt_status, users.delete_user,
                        tasks.schedule_analytics_cleanup, evict=cache.evict)
    return saga.delete_account(user_id)
