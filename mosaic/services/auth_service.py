"""
Mosaic Backend — Authentication Service
=========================================

What:  Registration, login and bearer-token handling.
How:   Passwords are hashed with werkzeug.security; tokens are HS256 JWTs
       (PyJWT) carrying the user id in `sub`.
Who:   Called by the /auth routes; decode_token() backs the get_current_user
       dependency on every protected route.

Token verification never touches the database, so requests with a missing or
bad token are rejected before any storage or database work happens.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool
from werkzeug.security import check_password_hash, generate_password_hash

from mosaic.config import settings
from mosaic.database import commit_session
from mosaic.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
)
from mosaic.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """Identity decoded from a verified bearer token."""
    id: int
    email: str


class AuthService:
    """Stateless; the database session is passed into each call."""

    async def register(self, db: AsyncSession, email: str, password: str) -> User:
        """
        Create a new account.

        Raises:
            ConflictError: The email is already registered (→ 409).
            DatabaseError: Query execution failed (→ 500).
        """
        try:
            result = await db.execute(select(User).where(User.email == email))
            if result.scalar_one_or_none() is not None:
                raise ConflictError(message="User already exists", context={"email": email})

            password_hash = await run_in_threadpool(generate_password_hash, password)
            user = User(email=email, password_hash=password_hash)
            db.add(user)
            await db.flush()
        except ConflictError:
            raise
        except IntegrityError:
            # Lost a race with a concurrent registration of the same email
            raise ConflictError(message="User already exists", context={"email": email})
        except SQLAlchemyError as e:
            logger.error("Database error registering %s: %s", email, str(e))
            raise DatabaseError(context={"operation": "register"})

        await commit_session(db, "register")
        logger.info("User registered: id=%s", user.id)
        return user

    async def login(self, db: AsyncSession, email: str, password: str) -> str:
        """
        Check credentials and issue a bearer token.

        Raises:
            AuthenticationError: Unknown email or wrong password (→ 401).
        """
        try:
            result = await db.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e))
            raise DatabaseError(context={"operation": "login"})

        if user is None or not await run_in_threadpool(
            check_password_hash, user.password_hash, password
        ):
            raise AuthenticationError(message="Invalid email or password")

        return self.create_token(user.id, user.email)

    def create_token(self, user_id: int, email: str) -> str:
        """Return a signed JWT for the given principal."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "email": email,
            "iat": now,
            "exp": now + timedelta(minutes=settings.jwt_expiration_minutes),
        }
        return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    def decode_token(self, token: str) -> CurrentUser:
        """
        Verify a JWT and return the identity it carries.

        Raises:
            AuthenticationError: Expired, tampered or malformed token.
        """
        try:
            payload = jwt.decode(
                token,
                settings.jwt_secret_key,
                algorithms=[settings.jwt_algorithm],
                options={"require": ["sub", "exp"]},
            )
            return CurrentUser(id=int(payload["sub"]), email=payload.get("email", ""))
        except jwt.ExpiredSignatureError:
            raise AuthenticationError(message="Token has expired")
        except (jwt.InvalidTokenError, ValueError):
            raise AuthenticationError(message="Token is invalid")


auth_service = AuthService()
