"""
NoteKeeper Backend: Auth Service (Access Control Layer)
========================================================

What:  Registration, login, token authentication, profile and password change.
How:   Validates input, then delegates persistence, hashing and signing to
       CredentialStore.
Who:   Routes under /api/auth and the get_current_user dependency.

Every note operation is scoped by the User returned from authenticate();
no route accepts an owner id from the client.
"""

import logging
import re
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.config import settings
from notekeeper.exceptions import AuthenticationError, ConflictError, ValidationError
from notekeeper.models.user import User
from notekeeper.schemas.auth import AuthResponse, UserResponse
from notekeeper.services.credential_store import CredentialStore, credential_store

logger = logging.getLogger(__name__)

# local@domain.tld, no whitespace
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

INVALID_LOGIN_MESSAGE = "Invalid email or password"


class AuthService:
    def __init__(
        self,
        store: Optional[CredentialStore] = None,
        password_min_length: Optional[int] = None,
    ):
        self.store = store or credential_store
        self.password_min_length = password_min_length or settings.password_min_length

    def _issue(self, user: User) -> AuthResponse:
        return AuthResponse(
            token=self.store.issue_token(user),
            expires_in=self.store.token_lifetime_seconds,
            user=UserResponse.model_validate(user),
        )

    def _check_password_length(self, password: str, field: str) -> None:
        if len(password) < self.password_min_length:
            raise ValidationError(
                message=f"Password must be at least {self.password_min_length} characters long.",
                field=field,
            )

    async def authenticate(self, db: AsyncSession, token: Optional[str]) -> User:
        """
        Resolve a bearer token to its User.

        Raises:
            AuthenticationError: missing, malformed, expired or foreign-signed
                token, unknown user, or a token issued before the last
                password change.
        """
        if not token:
            raise AuthenticationError(message="Not authenticated")

        claims = self.store.decode_token(token)
        user = await self.store.get_user(db, claims["sub"])
        if user is None:
            raise AuthenticationError()
        if claims["ver"] != user.token_version:
            logger.info("Revoked token presented for user %s", user.id)
            raise AuthenticationError(message="Session expired. Please log in again.")
        return user

    async def register(
        self,
        db: AsyncSession,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
    ) -> AuthResponse:
        """
        Create an account and sign the caller in.

        Raises:
            ValidationError: blank names, malformed email, short password
            ConflictError:   email already registered (case-insensitive)
        """
        first_name = (first_name or "").strip()
        last_name = (last_name or "").strip()
        email = (email or "").strip()

        if not first_name or not last_name:
            raise ValidationError(
                message="First name and last name are required.",
                field="first_name" if not first_name else "last_name",
            )
        if not EMAIL_PATTERN.match(email):
            raise ValidationError(message="Please provide a valid email address.", field="email")
        self._check_password_length(password, "password")

        if await self.store.get_user_by_email(db, email) is not None:
            raise ConflictError(message="An account with this email already exists.", field="email")

        user = await self.store.create_user(
            db,
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password,
        )
        logger.info("Registered user %s", user.id)
        return self._issue(user)

    async def login(self, db: AsyncSession, email: str, password: str) -> AuthResponse:
        """Unknown email and wrong password fail with the same message."""
        user = await self.store.get_user_by_email(db, email or "")
        if user is None or not self.store.verify_password(password, user.password_hash):
            logger.info("Failed login attempt")
            raise AuthenticationError(message=INVALID_LOGIN_MESSAGE)
        logger.info("User %s logged in", user.id)
        return self._issue(user)

    async def update_profile(
        self,
        db: AsyncSession,
        user: User,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> UserResponse:
        """Blank or omitted names keep their current value."""
        if first_name and first_name.strip():
            user.first_name = first_name.strip()
        if last_name and last_name.strip():
            user.last_name = last_name.strip()
        await self.store.save(db, user)
        return UserResponse.model_validate(user)

    async def change_password(
        self,
        db: AsyncSession,
        user: User,
        current_password: str,
        new_password: str,
    ) -> AuthResponse:
        """
        Replace the password and revoke every previously issued token.

        Raises:
            ValidationError:     new password too short
            AuthenticationError: current password does not match

        Returns:
            A fresh token for the new token_version.
        """
        self._check_password_length(new_password, "new_password")
        if not self.store.verify_password(current_password, user.password_hash):
            raise AuthenticationError(message="Current password is incorrect")

        user.password_hash = self.store.hash_password(new_password)
        user.token_version += 1
        await self.store.save(db, user)
        logger.info("Password changed for user %s (token_version=%d)", user.id, user.token_version)
        return self._issue(user)


auth_service = AuthService()
