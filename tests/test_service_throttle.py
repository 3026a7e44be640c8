"""Tests for :mod:`identity.services.throttle`."""

from unittest import TestCase, mock

import fakeredis
import redis

from identity.services import throttle


class TestLoginThrottle(TestCase):
    """:meth:`.LoginThrottle.check_and_increment` counts login attempts."""

    def setUp(self) -> None:
        self.r = fakeredis.FakeStrictRedis()
        self.r.flushall()
        self.throttle = throttle.LoginThrottle(self.r, limit=5, window=60)

    def test_five_attempts_allowed(self) -> None:
        """The first five attempts in a window may proceed."""
        for _ in range(5):
            self.assertTrue(self.throttle.check_and_increment('a@b.org'))

    def test_sixth_attempt_rejected(self) -> None:
        """The sixth attempt in a window is refused."""
        for _ in range(5):
            self.throttle.check_and_increment('a@b.org')
        self.assertFalse(self.throttle.check_and_increment('a@b.org'))
        self.assertFalse(self.throttle.check_and_increment('a@b.org'))

    def test_window_set_on_first_attempt(self) -> None:
        """The counter expires with the window."""
        self.throttle.check_and_increment('a@b.org')
        ttl = self.r.ttl('login_attempts:a@b.org')
        self.assertTrue(0 < ttl <= 60)

    def test_window_not_extended(self) -> None:
        """Later attempts do not push the window back."""
        self.throttle.check_and_increment('a@b.org')
        self.r.expire('login_attempts:a@b.org', 10)
        self.throttle.check_and_increment('a@b.org')
        self.assertTrue(self.r.ttl('login_attempts:a@b.org') <= 10)

    def test_counter_without_expiry_gets_one(self) -> None:
        """A counter left without an expiry is given one on the next attempt."""
        self.r.set('login_attempts:a@b.org', 7)
        self.assertEqual(self.r.ttl('login_attempts:a@b.org'), -1)
        self.assertFalse(self.throttle.check_and_increment('a@b.org'))
        ttl = self.r.ttl('login_attempts:a@b.org')
        self.assertTrue(0 < ttl <= 60)

    def test_expiry_failure_lets_attempt_through(self) -> None:
        """If the expiry cannot be set, the attempt is still allowed."""
        r = mock.MagicMock()
        r.pipeline.return_value.execute.return_value = [1, -1]
        r.expire.side_effect = redis.exceptions.TimeoutError
        login_throttle = throttle.LoginThrottle(r, limit=5)
        self.assertTrue(login_throttle.check_and_increment('a@b.org'))

    def test_allowed_after_window(self) -> None:
        """Once the window has passed, attempts are allowed again."""
        for _ in range(6):
            self.throttle.check_and_increment('a@b.org')
        self.r.delete('login_attempts:a@b.org')
        self.assertTrue(self.throttle.check_and_increment('a@b.org'))

    def test_addresses_counted_separately(self) -> None:
        """Attempts against one address don't affect another."""
        for _ in range(6):
            self.throttle.check_and_increment('a@b.org')
        self.assertTrue(self.throttle.check_and_increment('c@d.org'))


class TestThrottleUnavailable(TestCase):
    """When Redis is unavailable, logins are not throttled."""

    def test_no_client(self) -> None:
        """With Redis disabled, everyone gets through."""
        login_throttle = throttle.LoginThrottle(None, limit=1)
        for _ in range(3):
            self.assertTrue(login_throttle.check_and_increment('a@b.org'))

    def test_connection_error(self) -> None:
        """A Redis error lets the attempt through."""
        r = mock.MagicMock()
        r.pipeline.return_value.execute.side_effect = \
            redis.exceptions.ConnectionError
        login_throttle = throttle.LoginThrottle(r, limit=1)
        self.assertTrue(login_throttle.check_and_increment('a@b.org'))
