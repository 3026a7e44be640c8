"""Tests for :mod:`identity.routes.external_api`."""

import json
from typing import Any, Dict
from unittest import TestCase, mock

import requests
from mimesis import Person

from identity.breaker import BreakerState
from identity.factory import create_web_app
from identity.services import notifications, store, users


def mock_session_instance(mock_session: Any) -> mock.MagicMock:
    """Make the patched Session class return a single mock instance."""
    instance = mock.MagicMock()
    mock_session.return_value = instance
    return instance


class ExternalAPITestCase(TestCase):
    """Runs the whole application against SQLite and FakeRedis."""

    def setUp(self) -> None:
        """Initialize the Flask application, and get a client for testing."""
        self.app = create_web_app()
        self.app.config['REDIS_FAKE'] = True
        self.app.config['JWT_SECRET'] = 'foosecret'
        self.client = self.app.test_client()
        with self.app.app_context():
            users.create_all()
            store.current_redis().flushall()
        self.person = Person()

    def tearDown(self) -> None:
        with self.app.app_context():
            users.drop_all()

    def register(self, email: str, password: str = 'p4ssw0rd',
                 name: str = 'Jane') -> Any:
        return self.client.post('/api/v1/auth/register', json={
            'email': email, 'password': password, 'name': name
        })

    def login(self, email: str, password: str = 'p4ssw0rd') -> Any:
        return self.client.post('/api/v1/auth/login', json={
            'email': email, 'password': password
        })

    def auth_header(self, email: str) -> Dict[str, str]:
        token = json.loads(self.login(email).data)['token']
        return {'Authorization': f'Bearer {token}'}


class TestHealth(ExternalAPITestCase):
    """The health check endpoint."""

    def test_health(self) -> None:
        """Endpoint /api/v1/health says everything is fine."""
        response = self.client.get('/api/v1/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data), {'status': 'ok'})


@mock.patch('identity.services.notifications.requests.Session')
class TestRegistration(ExternalAPITestCase):
    """Registration does not depend on the notification service."""

    def test_register(self, mock_session: Any) -> None:
        """A new account is created, and preferences are initialized."""
        session = mock_session_instance(mock_session)
        session.post.return_value = mock.MagicMock(status_code=201, ok=True)

        email = self.person.email(unique=True)
        response = self.register(email)
        self.assertEqual(response.status_code, 201)
        data = json.loads(response.data)
        self.assertEqual(data['email'], email)
        self.assertEqual(data['name'], 'Jane')
        self.assertRegex(data['id'], r'^[0-9a-f]{32}$')
        self.assertIn('avatar', data)
        session.post.assert_called_once()

    def test_notifications_down(self, mock_session: Any) -> None:
        """Registration succeeds while notifications fail permanently."""
        session = mock_session_instance(mock_session)
        session.post.side_effect = requests.exceptions.ConnectionError

        for _ in range(5):
            response = self.register(self.person.email(unique=True))
            self.assertEqual(response.status_code, 201)

        # The breaker opened after three failures.
        self.assertEqual(session.post.call_count, 3)
        breaker = self.app.extensions[notifications.BREAKER]
        self.assertEqual(breaker.state, BreakerState.OPEN)

    def test_duplicate(self, mock_session: Any) -> None:
        """The same address can't be registered twice."""
        session = mock_session_instance(mock_session)
        session.post.return_value = mock.MagicMock(status_code=201, ok=True)

        email = self.person.email(unique=True)
        self.register(email)
        response = self.register(email)
        self.assertEqual(response.status_code, 409)
        self.assertIn('reason', json.loads(response.data))

    def test_bad_request(self, mock_session: Any) -> None:
        """A request without a valid address is rejected."""
        response = self.client.post('/api/v1/auth/register',
                                    data='not json at all')
        self.assertEqual(response.status_code, 400)
        mock_session.return_value.post.assert_not_called()


@mock.patch('identity.services.notifications.requests.Session')
class TestLogin(ExternalAPITestCase):
    """Login issues tokens, and is throttled."""

    def setUp(self) -> None:
        super(TestLogin, self).setUp()
        self.email = self.person.email(unique=True)
        with mock.patch('identity.services.notifications.requests.Session'):
            self.register(self.email)

    def test_login(self, mock_session: Any) -> None:
        """Good credentials get a token."""
        response = self.login(self.email)
        self.assertEqual(response.status_code, 200)
        self.assertIn('token', json.loads(response.data))

    def test_wrong_password(self, mock_session: Any) -> None:
        """Bad credentials get a 401."""
        response = self.login(self.email, 'wrong')
        self.assertEqual(response.status_code, 401)

    def test_sixth_attempt_throttled(self, mock_session: Any) -> None:
        """The sixth attempt within the window is refused."""
        for _ in range(5):
            self.assertEqual(self.login(self.email, 'wrong').status_code,
                             401)
        response = self.login(self.email)
        self.assertEqual(response.status_code, 429)

    def test_allowed_after_window(self, mock_session: Any) -> None:
        """Once the window has passed, the user may log in again."""
        for _ in range(6):
            self.login(self.email, 'wrong')
        with self.app.app_context():
            store.current_redis().delete(f'login_attempts:{self.email}')
        self.assertEqual(self.login(self.email).status_code, 200)


@mock.patch('identity.services.notifications.requests.Session')
class TestUsers(ExternalAPITestCase):
    """Reading user data."""

    def setUp(self) -> None:
        super(TestUsers, self).setUp()
        self.email = self.person.email(unique=True)
        with mock.patch('identity.services.notifications.requests.Session'):
            self.user_id = json.loads(self.register(self.email).data)['id']

    def test_internal_user(self, mock_session: Any) -> None:
        """Other services get the projection of a user."""
        response = self.client.get(f'/api/v1/internal/users/{self.user_id}')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(set(json.loads(response.data)),
                         {'id', 'name', 'email', 'avatar', 'plan'})

    def test_internal_user_cached(self, mock_session: Any) -> None:
        """The second read does not touch the database."""
        self.client.get(f'/api/v1/internal/users/{self.user_id}')
        with mock.patch('identity.services.users.get_user_by_id') as get:
            response = self.client.get(
                f'/api/v1/internal/users/{self.user_id}'
            )
            get.assert_not_called()
        self.assertEqual(response.status_code, 200)

    def test_internal_user_not_found(self, mock_session: Any) -> None:
        """An unknown id is not found."""
        response = self.client.get(f'/api/v1/internal/users/{"f" * 32}')
        self.assertEqual(response.status_code, 404)

    def test_internal_user_bad_id(self, mock_session: Any) -> None:
        """A malformed id is a bad request."""
        response = self.client.get('/api/v1/internal/users/nope')
        self.assertEqual(response.status_code, 400)

    def test_me(self, mock_session: Any) -> None:
        """A logged-in user can see their own profile."""
        response = self.client.get('/api/v1/users/me',
                                   headers=self.auth_header(self.email))
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertEqual(data['id'], self.user_id)
        self.assertNotIn('password_enc', data)

    def test_me_unauthenticated(self, mock_session: Any) -> None:
        """Without a token, there is no profile."""
        response = self.client.get('/api/v1/users/me')
        self.assertEqual(response.status_code, 401)
        self.assertIn('reason', json.loads(response.data))


@mock.patch('identity.tasks.cleanup_analytics')
@mock.patch('identity.services.expenses.requests.Session')
class TestDeleteUser(ExternalAPITestCase):
    """Deleting an account is guarded by the expenses service."""

    def setUp(self) -> None:
        super(TestDeleteUser, self).setUp()
        self.email = self.person.email(unique=True)
        with mock.patch('identity.services.notifications.requests.Session'):
            self.user_id = json.loads(self.register(self.email).data)['id']
        self.headers = self.auth_header(self.email)
        self.url = f'/api/v1/users/{self.user_id}'

    def user_exists(self) -> bool:
        with self.app.app_context():
            return users.get_projection(self.user_id) is not None

    def test_no_expenses(self, mock_session: Any, mock_task: Any) -> None:
        """A user unknown to the expenses service is deleted."""
        session = mock_session_instance(mock_session)
        session.get.return_value = mock.MagicMock(status_code=404, ok=False)

        response = self.client.delete(self.url, headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data), {'success': True})
        self.assertFalse(self.user_exists())
        mock_task.delay.assert_called_once_with(self.user_id)

    def test_cache_evicted(self, mock_session: Any, mock_task: Any) -> None:
        """Other services stop seeing the user straight away."""
        session = mock_session_instance(mock_session)
        session.get.return_value = mock.MagicMock(status_code=404, ok=False)

        internal = f'/api/v1/internal/users/{self.user_id}'
        self.assertEqual(self.client.get(internal).status_code, 200)
        self.client.delete(self.url, headers=self.headers)
        self.assertEqual(self.client.get(internal).status_code, 404)

    def test_debts(self, mock_session: Any, mock_task: Any) -> None:
        """A user with debts is not deleted."""
        session = mock_session_instance(mock_session)
        session.get.return_value = mock.MagicMock(
            status_code=200, ok=True,
            json=mock.MagicMock(return_value={'data': {'canDelete': False}})
        )
        response = self.client.delete(self.url, headers=self.headers)
        self.assertEqual(response.status_code, 409)
        self.assertTrue(self.user_exists())
        mock_task.delay.assert_not_called()

    def test_expenses_down(self, mock_session: Any, mock_task: Any) -> None:
        """If the expenses service can't be reached, nothing is deleted."""
        session = mock_session_instance(mock_session)
        session.get.side_effect = requests.exceptions.ConnectionError

        response = self.client.delete(self.url, headers=self.headers)
        self.assertEqual(response.status_code, 500)
        self.assertTrue(self.user_exists())
        mock_task.delay.assert_not_called()

    def test_analytics_broker_down(self, mock_session: Any,
                                   mock_task: Any) -> None:
        """The deletion stands even if the cleanup can't be queued."""
        from kombu.exceptions import OperationalError
        session = mock_session_instance(mock_session)
        session.get.return_value = mock.MagicMock(status_code=404, ok=False)
        mock_task.delay.side_effect = OperationalError('no broker')

        with self.assertLogs('identity.consistency', level='ERROR'):
            response = self.client.delete(self.url, headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(self.user_exists())

    def test_someone_else(self, mock_session: Any, mock_task: Any) -> None:
        """Nobody may delete another user's account."""
        other = self.person.email(unique=True)
        with mock.patch('identity.services.notifications.requests.Session'):
            self.register(other)
        response = self.client.delete(self.url,
                                      headers=self.auth_header(other))
        self.assertEqual(response.status_code, 403)
        self.assertTrue(self.user_exists())
        mock_session.return_value.get.assert_not_called()

    def test_unauthenticated(self, mock_session: Any, mock_task: Any) -> None:
        """A token is required."""
        response = self.client.delete(self.url)
        self.assertEqual(response.status_code, 401)
        self.assertTrue(self.user_exists())

    def test_bad_id(self, mock_session: Any, mock_task: Any) -> None:
        """A malformed id is a bad request."""
        response = self.client.delete('/api/v1/users/nope',
                                      headers=self.headers)
        self.assertEqual(response.status_code, 400)


@mock.patch('identity.services.notifications.requests.Session')
class TestRedisDisabled(TestCase):
    """With ``REDIS_ENABLED=0`` the service runs without cache or throttle."""

    def setUp(self) -> None:
        self.app = create_web_app()
        self.app.config['REDIS_ENABLED'] = '0'
        self.app.config['JWT_SECRET'] = 'foosecret'
        self.client = self.app.test_client()
        with self.app.app_context():
            users.create_all()
            self.assertIsNone(store.current_redis())
        self.email = Person().email(unique=True)
        with mock.patch('identity.services.notifications.requests.Session'):
            response = self.client.post('/api/v1/auth/register', json={
                'email': self.email, 'password': 'p4ssw0rd', 'name': 'Jane'
            })
        self.user_id = json.loads(response.data)['id']

    def tearDown(self) -> None:
        with self.app.app_context():
            users.drop_all()

    def test_login_not_throttled(self, mock_session: Any) -> None:
        """Logins work, and are never throttled."""
        for _ in range(7):
            response = self.client.post('/api/v1/auth/login', json={
                'email': self.email, 'password': 'wrong'
            })
            self.assertEqual(response.status_code, 401)
        response = self.client.post('/api/v1/auth/login', json={
            'email': self.email, 'password': 'p4ssw0rd'
        })
        self.assertEqual(response.status_code, 200)
        self.assertIn('token', json.loads(response.data))

    def test_internal_user_uncached(self, mock_session: Any) -> None:
        """Every read of a user goes to the database."""
        url = f'/api/v1/internal/users/{self.user_id}'
        self.assertEqual(self.client.get(url).status_code, 200)
        with mock.patch('identity.services.users.get_user_by_id',
                        wraps=users.get_user_by_id) as get:
            response = self.client.get(url)
            get.assert_called_once_with(self.user_id)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data)['email'], self.email)
