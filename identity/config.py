"""Flask configuration."""

import os

VERSION = '0.3'

SECRET_KEY = os.environ.get('SECRET_KEY', 'asdf1234')
SERVER_NAME = os.environ.get('IDENTITY_SERVER_NAME')

LOGFILE = os.environ.get('LOGFILE')
LOGLEVEL = os.environ.get('LOGLEVEL', 20)

JWT_SECRET = os.environ.get('JWT_SECRET', 'foosecret')
JWT_EXPIRES = os.environ.get('JWT_EXPIRES', '3600')
"""Lifetime of an access token, in seconds."""

SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI',
                                         'sqlite://')
SQLALCHEMY_TRACK_MODIFICATIONS = False
CREATE_DB = bool(int(os.environ.get('CREATE_DB', 0)))

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_ENABLED = os.environ.get('REDIS_ENABLED', '1')
"""If 0, the cache and the login throttle are skipped entirely."""
REDIS_FAKE = os.environ.get('REDIS_FAKE', False)
"""Use the FakeRedis library instead of a redis service.

Useful for testing, dev."""

NOTIFICATIONS_SERVICE_URL = os.environ.get(
    'NOTIFICATIONS_SERVICE_URL',
    'http://notifications-service:3000'
)
NOTIFICATIONS_TIMEOUT = os.environ.get('NOTIFICATIONS_TIMEOUT', '5')
NOTIFICATIONS_BREAKER_THRESHOLD = \
    os.environ.get('NOTIFICATIONS_BREAKER_THRESHOLD', '3')
NOTIFICATIONS_BREAKER_COOLDOWN = \
    os.environ.get('NOTIFICATIONS_BREAKER_COOLDOWN', '30')
"""Seconds the notification breaker stays open before allowing a probe."""

EXPENSES_SERVICE_URL = os.environ.get('EXPENSES_SERVICE_URL',
                                      'http://expenses-service:3000')
EXPENSES_TIMEOUT = os.environ.get('EXPENSES_TIMEOUT', '5')

ANALYTICS_SERVICE_URL = os.environ.get('ANALYTICS_SERVICE_URL',
                                       'http://analytics-service:3000')
ANALYTICS_TIMEOUT = os.environ.get('ANALYTICS_TIMEOUT', '10')

LOGIN_ATTEMPT_LIMIT = os.environ.get('LOGIN_ATTEMPT_LIMIT', '5')
LOGIN_ATTEMPT_WINDOW = os.environ.get('LOGIN_ATTEMPT_WINDOW', '60')
USER_CACHE_TTL = os.environ.get('USER_CACHE_TTL', '60')
