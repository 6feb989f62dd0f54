"""
NoteKeeper Backend: FastAPI Dependencies
=========================================

Process-wide singletons (storage gateway, services) and the per-request
identity resolution used by every protected route.

Tests swap the storage backend with
    app.dependency_overrides[get_storage_gateway] = lambda: fake_gateway
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.config import settings
from notekeeper.database import get_db_session
from notekeeper.models.user import User
from notekeeper.services.auth_service import AuthService, auth_service
from notekeeper.services.export_service import ExportService, export_service
from notekeeper.services.file_service import FileService, file_service
from notekeeper.services.note_service import NoteService
from notekeeper.services.storage import build_storage_gateway
from notekeeper.services.storage_base import ObjectStorageGateway

# auto_error=False: a missing header is reported by AuthService as a 401
# through the common error envelope instead of FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def get_storage_gateway() -> ObjectStorageGateway:
    return build_storage_gateway(settings)


def get_note_service(
    storage: ObjectStorageGateway = Depends(get_storage_gateway),
) -> NoteService:
    return NoteService(storage=storage)


def get_auth_service() -> AuthService:
    return auth_service


def get_export_service() -> ExportService:
    return export_service


def get_file_service() -> FileService:
    return file_service


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """
    Resolve the bearer token to a User.

    Raises:
        AuthenticationError: no/invalid/expired/revoked token (→ 401)
    """
    token = credentials.credentials if credentials else None
    return await auth.authenticate(db, token)
