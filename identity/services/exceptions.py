"""Provides exceptions occurring with external services."""


class NoSuchUser(RuntimeError):
    """User does not exist."""


class UserAlreadyExists(RuntimeError):
    """An account with this e-mail address already exists."""


class RegistrationFailed(RuntimeError):
    """Could not create a new user account."""


class AuthenticationFailed(RuntimeError):
    """Failed to authenticate user with provided credentials."""


class PasswordAuthenticationFailed(RuntimeError):
    """Password is not correct."""


class Unavailable(RuntimeError):
    """The system of record could not be reached."""


class CleanupFailed(IOError):
    """A collaborating service did not confirm removal of user data."""
