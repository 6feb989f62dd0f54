"""
NoteKeeper Backend: Credential Store
=====================================

What:  Persistence of user accounts plus the primitives AuthService builds on:
       password hashing and signed session tokens.
How:   - Users live in the `users` table, looked up by lower-cased email
       - Passwords are hashed with passlib's bcrypt CryptContext
       - Tokens are HS256 JWTs (python-jose) carrying
             sub  user id
             ver  token_version at issue time
             iat  issued-at
             exp  expiry (ACCESS_TOKEN_EXPIRE_DAYS)
Who:   AuthService only. Routes never touch this module directly.

Decoding only checks signature and expiry; comparing `ver` against the
stored token_version is AuthService's job, because it needs the user row.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.config import settings
from notekeeper.exceptions import AuthenticationError, ConflictError, DatabaseError
from notekeeper.models.user import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    """
    User records, password hashes and session tokens.

    Args:
        secret_key:  HMAC key for token signatures
        algorithm:   JWT algorithm (HS256)
        expire_days: Token validity in days
        bcrypt_rounds: bcrypt work factor (tests lower it to keep runs fast)
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        expire_days: Optional[int] = None,
        bcrypt_rounds: Optional[int] = None,
    ):
        self.secret_key = secret_key or settings.jwt_secret_key
        self.algorithm = algorithm or settings.jwt_algorithm
        self.expire_days = expire_days or settings.access_token_expire_days
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=bcrypt_rounds or settings.bcrypt_rounds,
        )

    @property
    def token_lifetime_seconds(self) -> int:
        return self.expire_days * 24 * 60 * 60

    # ── Passwords ─────────────────────────────────────────────────────────

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return self.pwd_context.verify(password, password_hash)
        except ValueError:
            # Unrecognized or corrupt hash
            logger.warning("Stored password hash could not be parsed")
            return False

    # ── Tokens ────────────────────────────────────────────────────────────

    def issue_token(self, user: User) -> str:
        """Sign a token bound to the user's current token_version."""
        now = datetime.now(timezone.utc)
        claims = {
            "sub": str(user.id),
            "ver": user.token_version,
            "iat": now,
            "exp": now + timedelta(days=self.expire_days),
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> Dict[str, Any]:
        """
        Verify signature and expiry and return the claims.

        Raises:
            AuthenticationError: expired, malformed or wrongly signed token,
                or a token without the sub/ver claims.
        """
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise AuthenticationError(message="Session expired. Please log in again.")
        except JWTError as e:
            logger.info("Rejected bearer token: %s", str(e))
            raise AuthenticationError()

        if "sub" not in claims or not isinstance(claims.get("ver"), int):
            raise AuthenticationError()
        try:
            claims["sub"] = uuid.UUID(str(claims["sub"]))
        except ValueError:
            raise AuthenticationError()
        return claims

    # ── Users ─────────────────────────────────────────────────────────────

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        try:
            return await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading user %s: %s", user_id, str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

    async def get_user_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        try:
            result = await db.execute(select(User).where(User.email == normalize_email(email)))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user by email: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

    async def create_user(
        self,
        db: AsyncSession,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
    ) -> User:
        """
        Insert a new account with a hashed password.

        Raises:
            ConflictError: the email is already registered. The unique index
                also catches two registrations racing past the pre-check.
        """
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=normalize_email(email),
            password_hash=self.hash_password(password),
            token_version=0,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError(message="An account with this email already exists.", field="email")
        except SQLAlchemyError as e:
            logger.error("Database error creating user: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})
        logger.info("User created: %s", user.id)
        return user

    async def save(self, db: AsyncSession, user: User) -> User:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error saving user %s: %s", user.id, str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})
        return user


credential_store = CredentialStore()
