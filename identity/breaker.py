"""
Circuit breaker for calls to unreliable collaborators.

A :class:`Breaker` sits in front of one collaborator. Callers ask it for
permission (:meth:`Breaker.try_acquire`) before making a call, and report the
outcome afterwards (:meth:`Breaker.record_success` or
:meth:`Breaker.record_failure`)::

    if not breaker.try_acquire():
        return fallback()
    try:
        response = do_the_call()
    except SomethingWentWrong:
        breaker.record_failure()
        raise
    breaker.record_success()

After ``failure_threshold`` consecutive failures the breaker opens, and
refuses permission for ``cooldown`` seconds. The first caller to ask after the
cooldown gets to make a single probe call (the breaker is then half-open). A
successful probe closes the breaker; a failed probe opens it again. The
failure count is not reset when the breaker goes half-open, so one failed
probe is enough to reopen it.

Nothing happens on a timer: the open to half-open transition is evaluated
when someone asks.
"""

import threading
import time
from enum import Enum
from typing import Callable, Optional

from . import logging

logger = logging.getLogger(__name__)


class BreakerState(Enum):
    """States of a :class:`Breaker`."""

    CLOSED = 'CLOSED'
    OPEN = 'OPEN'
    HALF_OPEN = 'HALF_OPEN'


class Breaker(object):
    """
    A three-state circuit breaker.

    Instances are safe to share between threads; all state transitions happen
    under a lock.
    """

    def __init__(self, failure_threshold: int = 3, cooldown: float = 30.0,
                 name: str = 'breaker',
                 clock: Callable[[], float] = time.monotonic) -> None:
        """
        Set up a closed breaker.

        Parameters
        ----------
        failure_threshold : int
            Number of consecutive failures that opens the breaker.
        cooldown : float
            Seconds to stay open before permitting a probe call.
        name : str
            Used in log messages.
        clock : callable
            Source of monotonic time, in seconds.
        """
        if failure_threshold <= 0:
            raise ValueError('failure_threshold must be positive')
        if cooldown <= 0:
            raise ValueError('cooldown must be positive')
        self.failure_threshold = failure_threshold
        self.cooldown = cooldown
        self.name = name
        self._clock = clock
        self._lock = threading.Lock()
        self._state = BreakerState.CLOSED
        self._failure_count = 0
        self._opened_at: Optional[float] = None
        self._probe_started_at: Optional[float] = None

    @property
    def state(self) -> BreakerState:
        """Current state of the breaker."""
        return self._state

    @property
    def failure_count(self) -> int:
        """Failures recorded since the last success."""
        return self._failure_count

    def try_acquire(self) -> bool:
        """
        Ask for permission to call the collaborator.

        Returns
        -------
        bool
            ``False`` if the breaker is open and the cooldown has not elapsed,
            or if a half-open probe is already in flight.
        """
        with self._lock:
            now = self._clock()
            if self._state is BreakerState.CLOSED:
                return True
            if self._state is BreakerState.OPEN:
                assert self._opened_at is not None
                if now < self._opened_at + self.cooldown:
                    return False
                self._state = BreakerState.HALF_OPEN
                self._probe_started_at = now
                logger.warning('Breaker %s half-open; allowing a probe call',
                               self.name)
                return True
            # Half-open. A probe that never reported back must not keep the
            # breaker shut forever.
            assert self._probe_started_at is not None
            if now < self._probe_started_at + self.cooldown:
                return False
            self._probe_started_at = now
            logger.warning('Breaker %s probe went missing; allowing another',
                           self.name)
            return True

    def record_success(self) -> None:
        """Report a successful call. Closes the breaker."""
        with self._lock:
            if self._state is not BreakerState.CLOSED:
                logger.info('Breaker %s closed', self.name)
            self._failure_count = 0
            self._state = BreakerState.CLOSED
            self._opened_at = None
            self._probe_started_at = None

    def record_failure(self) -> None:
        """Report a failed call. Opens the breaker at the threshold."""
        with self._lock:
            self._failure_count += 1
            if self._failure_count >= self.failure_threshold:
                if self._state is not BreakerState.OPEN:
                    logger.warning('Breaker %s opened after %i failures',
                                   self.name, self._failure_count)
                self._state = BreakerState.OPEN
                self._opened_at = self._clock()
                self._probe_started_at = None
