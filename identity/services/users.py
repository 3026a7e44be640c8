"""
Provides access to user accounts in the system of record.

This is the only authoritative source of user data. Everything in Redis is a
copy.
"""

import json
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional
from urllib.parse import quote

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.exc import IntegrityError, OperationalError

from .. import logging, passwords
from ..domain import PLANS, User, UserProjection
from .exceptions import NoSuchUser, UserAlreadyExists, RegistrationFailed, \
    AuthenticationFailed, PasswordAuthenticationFailed, Unavailable

logger = logging.getLogger(__name__)

db: SQLAlchemy = SQLAlchemy()

AVATAR_URL = 'https://api.dicebear.com/7.x/thumbs/svg?seed={seed}'


class DBUser(db.Model):  # type: ignore
    """Model for user accounts."""

    __tablename__ = 'users'

    user_id = Column(String(32), primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255))
    password_enc = Column(String(255), nullable=False)
    avatar = Column(String(512))
    plan = Column(String(16), nullable=False, default=PLANS[0])
    addons = Column(Text, nullable=False, default='[]')
    """JSON-encoded list of add-on names."""
    created = Column(DateTime, nullable=False)
    updated = Column(DateTime, nullable=False)

    def to_domain(self) -> User:
        """Make a :class:`.User` from this row."""
        return User(
            user_id=self.user_id,
            email=self.email,
            name=self.name,
            avatar=self.avatar,
            plan=self.plan,
            addons=json.loads(self.addons or '[]'),
            created=self.created,
            updated=self.updated
        )


def init_app(app: Flask) -> None:
    """Set configuration defaults and attach session to the application."""
    app.config.setdefault('SQLALCHEMY_DATABASE_URI', 'sqlite://')
    app.config.setdefault('SQLALCHEMY_TRACK_MODIFICATIONS', False)
    db.init_app(app)


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()


@contextmanager
def transaction() -> Generator:
    """Context manager for database transaction."""
    try:
        yield db.session
        db.session.commit()
    except OperationalError as e:
        logger.error('Database unavailable, rolling back: %s', str(e))
        db.session.rollback()
        raise Unavailable('Database unavailable') from e
    except Exception as e:
        logger.error('Commit failed, rolling back: %s', str(e))
        db.session.rollback()
        raise


def avatar_for(name: Optional[str], email: str) -> str:
    """Build a generated avatar URL for a new user."""
    return AVATAR_URL.format(seed=quote(name or email, safe=''))


def email_exists(email: str) -> bool:
    """
    Determine whether a user with a particular address already exists.

    Parameters
    ----------
    email : str

    Returns
    -------
    bool

    """
    with transaction() as session:
        data = session.query(DBUser).filter(DBUser.email == email).first()
        if data:
            return True
        return False


def register(email: str, password: str, name: Optional[str] = None) -> User:
    """
    Create a new user.

    Parameters
    ----------
    email : str
    password : str
        Stored only as a hash.
    name : str or None

    Returns
    -------
    :class:`.User`

    Raises
    ------
    :class:`.UserAlreadyExists`
        If the address is already taken.
    :class:`.RegistrationFailed`
        If the user could not be stored for any other reason.

    """
    now = datetime.now(timezone.utc)
    db_user = DBUser(
        user_id=uuid.uuid4().hex,
        email=email,
        name=name,
        password_enc=passwords.hash_password(password),
        avatar=avatar_for(name, email),
        plan=PLANS[0],
        addons='[]',
        created=now,
        updated=now
    )
    try:
        with transaction() as session:
            session.add(db_user)
    except IntegrityError as e:
        raise UserAlreadyExists(f'{email} is already registered') from e
    except Unavailable:
        raise
    except Exception as e:
        logger.debug(e)
        raise RegistrationFailed('Could not create user') from e
    return db_user.to_domain()


def get_user_by_id(user_id: str) -> User:
    """Load user data from the database."""
    with transaction() as session:
        db_user = session.query(DBUser) \
            .filter(DBUser.user_id == user_id) \
            .first()
        user = db_user.to_domain() if db_user is not None else None
    if user is None:
        raise NoSuchUser(f'No user with id {user_id}')
    return user


def get_projection(user_id: str) -> Optional[UserProjection]:
    """Load the internal view of a user, or ``None`` if there is no user."""
    try:
        return get_user_by_id(user_id).to_projection()
    except NoSuchUser:
        return None


def authenticate(email: str, password: str) -> User:
    """
    Check a user's credentials.

    Raises
    ------
    :class:`.AuthenticationFailed`
        If there is no such user, or the password is wrong. The two cases are
        deliberately indistinguishable to the caller.

    """
    with transaction() as session:
        db_user = session.query(DBUser).filter(DBUser.email == email).first()
        if db_user is not None:
            password_enc = db_user.password_enc
            user = db_user.to_domain()
    if db_user is None:
        raise AuthenticationFailed('No such user')
    try:
        passwords.check_password(password, password_enc)
    except PasswordAuthenticationFailed as e:
        raise AuthenticationFailed('Invalid password') from e
    return user


def delete_user(user_id: str) -> bool:
    """
    Delete a user record.

    Returns
    -------
    bool
        ``True`` if a record was removed, ``False`` if there was none.

    """
    with transaction() as session:
        deleted = session.query(DBUser) \
            .filter(DBUser.user_id == user_id) \
            .delete(synchronize_session=False)
    logger.debug('Deleted %i rows for user %s', deleted, user_id)
    return bool(deleted)
