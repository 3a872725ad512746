"""User router - Sign-up, sign-in and account endpoints, plus admin user management"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin, get_current_user
from ...database import get_db
from ...identity import IdentityProvider, get_identity_provider
from ...models import User, UserRole
from ...rate_limiter import create_rate_limiter
from .schemas import AuthResponse, LoginRequest, RegisterRequest, ResetPasswordRequest, RoleUpdate, UserResponse
from .service import UserService

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["Authentication"])
users_router = APIRouter(prefix="/users", tags=["Users"])

rate_limit_register = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="register")
rate_limit_login = create_rate_limiter(limit=10, window_seconds=300, key_prefix="login")
rate_limit_reset = create_rate_limiter(limit=3, window_seconds=3600, key_prefix="password_reset")
rate_limit_verification = create_rate_limiter(
    limit=3, window_seconds=3600, key_prefix="resend_verification", per_user=True
)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


# ============================================================================
# AUTHENTICATION
# ============================================================================


@auth_router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    data: RegisterRequest,
    _: None = Depends(rate_limit_register),
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    """Create an account; a verification link is emailed to the address"""
    handle = await identity.register(db, data.email, data.password, data.fullName)
    return AuthResponse.from_handle(handle)


@auth_router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    _: None = Depends(rate_limit_login),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    handle = await identity.login(data.email, data.password)
    return AuthResponse.from_handle(handle)


@auth_router.post("/logout")
async def logout(
    current_user: User = Depends(get_current_user),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    identity.logout(current_user.firebase_uid)
    return {"message": "Signed out"}


@auth_router.post("/reset-password")
async def reset_password(
    data: ResetPasswordRequest,
    _: None = Depends(rate_limit_reset),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    await identity.reset_password(data.email)
    # Same answer whether or not the account exists
    return {"message": "If an account exists for this email, a reset link has been sent."}


@auth_router.post("/resend-verification")
async def resend_verification(
    current_user: User = Depends(get_current_user),
    _: None = Depends(rate_limit_verification),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    await identity.resend_verification(current_user)
    return {"message": "Verification email sent"}


@auth_router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return UserResponse.from_model(current_user)


# ============================================================================
# ADMIN USER MANAGEMENT
# ============================================================================


@users_router.get("", response_model=list[UserResponse])
async def list_users(
    role: Optional[UserRole] = Query(None),
    _admin: User = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
):
    return [UserResponse.from_model(u) for u in service.list_users(role)]


@users_router.patch("/{user_id}/role", response_model=UserResponse)
async def set_user_role(
    user_id: int,
    data: RoleUpdate,
    admin: User = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
):
    """Promote a user to practitioner or admin, or demote back to client"""
    return UserResponse.from_model(service.set_role(user_id, data.role, admin))
