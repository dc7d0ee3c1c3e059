"""Registration, login and the bootstrap administrator."""
import logging
import re

from app.core.config import Settings
from app.core.errors import ConflictError, ForbiddenError, UnauthorizedError, ValidationError
from app.core.security import create_access_token, hash_password, verify_password
from app.schemas.user import AuthResponseSchema, UserOutSchema, UserRecord
from app.store.base import Store, normalize_email

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8
# bcrypt hard limit (UTF-8 bytes)
MAX_PASSWORD_BYTES = 72


def issue_token(settings: Settings, user: UserRecord) -> str:
    return create_access_token(settings, user.id, extra={"email": user.email, "role": user.role})


def _auth_response(settings: Settings, user: UserRecord) -> AuthResponseSchema:
    return AuthResponseSchema(token=issue_token(settings, user), user=UserOutSchema.model_validate(user))


def register(store: Store, settings: Settings, name: str, email: str, password: str) -> AuthResponseSchema:
    name = (name or "").strip()
    email_norm = normalize_email(email)
    pwd = password or ""

    if not name or not email_norm or not pwd:
        raise ValidationError("All fields are required")
    if not EMAIL_RE.match(email_norm):
        raise ValidationError("Invalid email address")
    if len(pwd) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(pwd.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError("Password is too long")
    if store.get_user_by_email(email_norm):
        raise ConflictError("Email already registered")

    user = store.create_user(email=email_norm, password_hash=hash_password(pwd), name=name)
    logger.info("Registered user %s", user.id)
    return _auth_response(settings, user)


def is_bootstrap_credential(settings: Settings, email: str, password: str) -> bool:
    """Exact match on both halves of the configured bootstrap pair."""
    return (
        normalize_email(email) == normalize_email(settings.bootstrap_admin_email)
        and password == settings.bootstrap_admin_password
    )


def ensure_bootstrap_admin(store: Store, settings: Settings) -> UserRecord:
    """Create the bootstrap admin account, or promote it if it exists without admin role."""
    email = normalize_email(settings.bootstrap_admin_email)
    user = store.get_user_by_email(email)
    if user is None:
        try:
            user = store.create_user(
                email=email,
                password_hash=hash_password(settings.bootstrap_admin_password),
                name=settings.bootstrap_admin_name,
                role="admin",
            )
            logger.info("Created bootstrap admin account %s", user.id)
            return user
        except ConflictError:
            # another request created it first
            user = store.get_user_by_email(email)
            if user is None:
                raise
    if user.role != "admin":
        user = store.update_user_role(user.id, "admin")
        logger.info("Promoted bootstrap account %s to admin", user.id)
    return user


def login(store: Store, settings: Settings, email: str, password: str) -> AuthResponseSchema:
    if not email or not password:
        raise ValidationError("Email and password are required")

    if is_bootstrap_credential(settings, email, password):
        user = ensure_bootstrap_admin(store, settings)
    else:
        user = store.get_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.debug("Rejected login for %s", normalize_email(email))
            raise UnauthorizedError("Invalid email or password")

    if user.is_blocked:
        raise ForbiddenError("Your account has been blocked")
    return _auth_response(settings, user)
