"""Pydantic schemas for users and authentication."""
from datetime import datetime
from typing import Literal

from pydantic import Field

from app.schemas.common import CamelModel, RecordModel

Role = Literal["user", "admin"]


class UserRecord(RecordModel):
    id: str
    email: str
    password_hash: str
    name: str
    role: Role = "user"
    is_blocked: bool = False
    created_at: datetime


class UserOutSchema(CamelModel):
    """User as returned by the API (never carries the password hash)."""

    id: str
    email: str
    name: str
    role: Role
    is_blocked: bool
    created_at: datetime


class RegisterSchema(CamelModel):
    name: str = ""
    email: str = ""
    password: str = ""


class LoginSchema(CamelModel):
    email: str = ""
    password: str = ""


class AuthResponseSchema(CamelModel):
    token: str
    user: UserOutSchema


class RoleUpdateSchema(CamelModel):
    role: str


class BlockUpdateSchema(CamelModel):
    is_blocked: bool = Field(...)
