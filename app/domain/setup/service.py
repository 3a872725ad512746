"""Setup service - One-time system initialization and the first admin account"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from ...config import DEFAULT_ADMIN_EMAIL
from ...database import commit
from ...errors import AuthorizationError
from ...models import User, UserRole
from .repository import SetupRepository

logger = logging.getLogger(__name__)

SYSTEM_INITIALIZED_KEY = "system_initialized"


class SetupService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = SetupRepository()

    def is_initialized(self) -> bool:
        setting = self.repo.get_setting(self.db, SYSTEM_INITIALIZED_KEY)
        return bool(setting and setting.value and setting.value.get("initialized"))

    def get_status(self) -> dict:
        setting = self.repo.get_setting(self.db, SYSTEM_INITIALIZED_KEY)
        value = (setting.value if setting else None) or {}
        return {
            "initialized": bool(value.get("initialized")),
            "initializedAt": value.get("initializedAt"),
            "initializedBy": value.get("initializedBy"),
            "adminCount": self.repo.count_admins(self.db),
        }

    def initialize_system(self, actor: User) -> dict:
        """
        Promote the configured default admin and persist the initialized flag.
        Safe to call repeatedly.

        With DEFAULT_ADMIN_EMAIL set, only that account (or an existing admin)
        may initialize, and nobody else is ever promoted. Without it, the first
        verified caller becomes admin while no admin exists.
        """
        if self.is_initialized():
            logger.info("ℹ️ System already initialized")
            return self.get_status()

        is_admin = actor.role == UserRole.ADMIN.value
        if self.repo.count_admins(self.db) > 0 and not is_admin:
            raise AuthorizationError("Only an administrator can initialize the system")
        if not is_admin and not actor.email_verified:
            raise AuthorizationError("Verify your email address before initializing the system")

        if DEFAULT_ADMIN_EMAIL:
            if not is_admin and (actor.email or "").lower() != DEFAULT_ADMIN_EMAIL.lower():
                logger.warning(f"⚠️ {actor.email} attempted to initialize the system")
                raise AuthorizationError("Only the default administrator can initialize the system")
            if is_admin:
                default_admin = self.repo.get_user_by_email(self.db, DEFAULT_ADMIN_EMAIL)
            else:
                default_admin = self.db.get(User, actor.id)
            if default_admin and default_admin.role != UserRole.ADMIN.value:
                default_admin.role = UserRole.ADMIN.value
                logger.info(f"👑 Promoted default admin {default_admin.email}")
        elif not is_admin:
            self.db.get(User, actor.id).role = UserRole.ADMIN.value
            logger.info(f"👑 Promoted {actor.email} as first admin")

        self.repo.set_setting(
            self.db,
            SYSTEM_INITIALIZED_KEY,
            {
                "initialized": True,
                "initializedAt": datetime.utcnow().isoformat(),
                "initializedBy": actor.email,
            },
        )
        commit(self.db)
        logger.info(f"✅ System initialized by {actor.email}")
        return self.get_status()

    def reset_system(self) -> dict:
        """Clear the initialized flag; admin roles are left as they are"""
        self.repo.delete_setting(self.db, SYSTEM_INITIALIZED_KEY)
        commit(self.db)
        logger.warning("⚠️ System initialization flag cleared")
        return self.get_status()


def check_system_initialized(db: Session) -> bool:
    """Startup check, logged once per process"""
    initialized = SetupService(db).is_initialized()
    if initialized:
        logger.info("✅ System initialized")
    else:
        logger.warning("⚠️ System not initialized yet - POST /setup/initialize to create the first admin")
    return initialized
