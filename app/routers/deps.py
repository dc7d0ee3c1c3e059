"""Request dependencies: store/settings access and the authorization guard."""
import logging
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import Settings
from app.core.errors import ForbiddenError, UnauthorizedError
from app.core.security import decode_access_token
from app.schemas.user import UserRecord
from app.services.files import FileStorage
from app.store.base import Store

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_file_storage(request: Request) -> FileStorage:
    return request.app.state.files


StoreDep = Annotated[Store, Depends(get_store)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
FilesDep = Annotated[FileStorage, Depends(get_file_storage)]


def _resolve_user(
    store: Store,
    settings: Settings,
    credentials: HTTPAuthorizationCredentials | None,
) -> UserRecord | None:
    """Return the user named by a valid bearer token, or None."""
    if credentials is None or not credentials.credentials:
        return None
    payload = decode_access_token(settings, credentials.credentials)
    if payload is None:
        logger.debug("Rejected bearer token")
        return None
    return store.get_user(payload["sub"])


def get_current_user_optional(
    store: StoreDep,
    settings: SettingsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> UserRecord | None:
    """Attach the user if the credential is valid; otherwise proceed anonymously."""
    user = _resolve_user(store, settings, credentials)
    if user is None or user.is_blocked:
        return None
    return user


def require_auth(
    store: StoreDep,
    settings: SettingsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> UserRecord:
    if credentials is None:
        raise UnauthorizedError("Authentication required")
    user = _resolve_user(store, settings, credentials)
    if user is None:
        raise UnauthorizedError("Invalid or expired token")
    if user.is_blocked:
        raise ForbiddenError("Your account has been blocked")
    return user


def require_admin(user: Annotated[UserRecord, Depends(require_auth)]) -> UserRecord:
    # role comes from the store, so a demoted admin loses access at once
    if user.role != "admin":
        raise ForbiddenError("Admin access required")
    return user


CurrentUser = Annotated[UserRecord, Depends(require_auth)]
OptionalUser = Annotated[UserRecord | None, Depends(get_current_user_optional)]
AdminUser = Annotated[UserRecord, Depends(require_admin)]
