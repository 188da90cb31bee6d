"""Account registration and password authentication."""

from __future__ import annotations

import logging

import bcrypt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from herodex.db.models import User
from herodex.db.repositories.account_repository import AccountRepository
from herodex.errors import AccountValidationError, PersistenceError
from herodex.schemas.account import SessionUser

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72

PASSWORDS_DO_NOT_MATCH = "Passwords do not match"
ACCOUNT_EXISTS = "Username or email already exists"
INVALID_CREDENTIALS = "Invalid email/username or password"
MISSING_FIELDS = "Username, email, and password are required"


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, *, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Hash password using bcrypt"""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Verify password against hash"""
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def to_session_user(user: User) -> SessionUser:
    return SessionUser(id=user.id, username=user.username, email=user.email)


class AuthService:
    """Creates accounts and checks credentials against stored bcrypt hashes."""

    def __init__(
        self,
        accounts: AccountRepository,
        *,
        session: AsyncSession,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ) -> None:
        self._accounts = accounts
        self._session = session
        self._bcrypt_rounds = bcrypt_rounds

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        confirm_password: str,
    ) -> SessionUser:
        """Create an account and return the identity to store in the session.

        Raises:
            AccountValidationError: blank fields, mismatched passwords, or a
                username/email that is already registered.
        """

        username = (username or "").strip()
        email = (email or "").strip().lower()
        password = password or ""

        if not username or not email or not password:
            raise AccountValidationError(MISSING_FIELDS)
        if password != (confirm_password or ""):
            raise AccountValidationError(PASSWORDS_DO_NOT_MATCH)
        if await self._accounts.username_or_email_taken(username=username, email=email):
            raise AccountValidationError(ACCOUNT_EXISTS)

        try:
            user = await self._accounts.create_user(
                username=username,
                email=email,
                password_hash=hash_password(password, rounds=self._bcrypt_rounds),
            )
            await self._session.commit()
        except IntegrityError as exc:
            # Lost a race against a concurrent registration.
            await self._session.rollback()
            raise AccountValidationError(ACCOUNT_EXISTS) from exc
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Failed to create account %r: %s", username, exc)
            raise PersistenceError("Registration failed") from exc

        logger.info("Registered account %s (%s)", user.id, username)
        return to_session_user(user)

    async def authenticate(self, identifier: str, password: str) -> SessionUser:
        """Check ``password`` for the account matching ``identifier``.

        ``identifier`` may be the account's email (any case) or its username.
        """

        identifier = (identifier or "").strip()
        if not identifier or not password:
            raise AccountValidationError(INVALID_CREDENTIALS)

        user = await self._accounts.find_by_identifier(identifier)
        if user is None or not verify_password(password, user.password_hash):
            raise AccountValidationError(INVALID_CREDENTIALS)
        return to_session_user(user)


__all__ = [
    "ACCOUNT_EXISTS",
    "AuthService",
    "INVALID_CREDENTIALS",
    "MISSING_FIELDS",
    "PASSWORDS_DO_NOT_MATCH",
    "hash_password",
    "to_session_user",
    "verify_password",
]
