"""Admin-side user management."""
import logging

from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.schemas.user import UserRecord
from app.store.base import Store

logger = logging.getLogger(__name__)

ROLES = ("user", "admin")


def _check_not_self(actor: UserRecord, user_id: str, action: str) -> None:
    if actor.id == user_id:
        raise ForbiddenError(f"You cannot {action} your own account")


def set_user_role(store: Store, actor: UserRecord, user_id: str, role: str) -> UserRecord:
    if role not in ROLES:
        raise ValidationError("Invalid role")
    if store.get_user(user_id) is None:
        raise NotFoundError("User not found")
    _check_not_self(actor, user_id, "change the role of")
    user = store.update_user_role(user_id, role)
    logger.info("Admin %s set role of %s to %s", actor.id, user_id, role)
    return user


def set_user_blocked(store: Store, actor: UserRecord, user_id: str, is_blocked: bool) -> UserRecord:
    if store.get_user(user_id) is None:
        raise NotFoundError("User not found")
    _check_not_self(actor, user_id, "block or unblock")
    user = store.update_user_block(user_id, is_blocked)
    logger.info("Admin %s set blocked=%s for %s", actor.id, is_blocked, user_id)
    return user
