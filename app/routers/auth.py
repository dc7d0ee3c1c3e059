"""Auth routes: register, login, current user. Bearer-token auth."""
from fastapi import APIRouter

from app.routers.deps import CurrentUser, SettingsDep, StoreDep
from app.schemas.user import AuthResponseSchema, LoginSchema, RegisterSchema, UserOutSchema
from app.services import auth as auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponseSchema)
def register(body: RegisterSchema, store: StoreDep, settings: SettingsDep):
    """Create a reader account and return a token for it."""
    return auth_service.register(store, settings, body.name, body.email, body.password)


@router.post("/login", response_model=AuthResponseSchema)
def login(body: LoginSchema, store: StoreDep, settings: SettingsDep):
    """Authenticate; 401 for bad credentials, 403 for blocked accounts."""
    return auth_service.login(store, settings, body.email, body.password)


@router.get("/me", response_model=UserOutSchema)
def me(user: CurrentUser):
    return user
