"""Users domain - Accounts, sign-in and roles"""

from .router import auth_router, users_router

__all__ = ["auth_router", "users_router"]
