"""
User identity service.

The identity service owns user accounts: registration, login, and the
internal lookups that other services perform against the user record. Most of
what it does is ordinary data access. The interesting part is how it behaves
when its collaborators misbehave.

- The notification service is called during registration behind a
  :class:`.breaker.Breaker`, so that a failing notification backend is skipped
  rather than hammered. Registration never depends on the outcome.
- Internal user lookups read through a Redis cache (see
  :mod:`.services.cache`). If Redis is down, the cache is skipped.
- Login attempts are counted in Redis (see :mod:`.services.throttle`). If Redis
  is down, logins are not throttled.
- Account deletion (see :mod:`.process.deletion`) first asks the expenses
  service whether the user may be deleted, refuses if that cannot be
  determined, deletes the local record, and finally hands an analytics cleanup
  to the background worker (see :mod:`.tasks`).
"""
