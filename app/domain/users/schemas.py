"""User domain schemas - Pydantic models for accounts and sign-in"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr

from ...identity import UserHandle
from ...models import User, UserRole


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    fullName: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ResetPasswordRequest(BaseModel):
    email: EmailStr


class RoleUpdate(BaseModel):
    role: UserRole


class AuthResponse(BaseModel):
    uid: str
    email: str
    emailVerified: bool
    displayName: Optional[str] = None
    idToken: Optional[str] = None
    refreshToken: Optional[str] = None

    @classmethod
    def from_handle(cls, handle: UserHandle) -> "AuthResponse":
        return cls(
            uid=handle.uid,
            email=handle.email,
            emailVerified=handle.email_verified,
            displayName=handle.display_name,
            idToken=handle.id_token,
            refreshToken=handle.refresh_token,
        )


class UserResponse(BaseModel):
    id: int
    email: str
    fullName: Optional[str] = None
    role: UserRole
    emailVerified: bool
    subscriptions: list[dict]
    hasActiveSubscriptions: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            fullName=user.full_name,
            role=UserRole(user.role),
            emailVerified=user.email_verified,
            subscriptions=user.subscriptions or [],
            hasActiveSubscriptions=user.has_active_subscriptions,
            created_at=user.created_at,
        )
