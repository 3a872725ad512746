"""User service - Admin management of accounts and roles"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...database import commit
from ...errors import NotFoundError, ValidationError
from ...models import User, UserRole

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def list_users(self, role: Optional[UserRole] = None) -> list[User]:
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role.value)
        return query.order_by(User.created_at.desc(), User.id.desc()).all()

    def set_role(self, user_id: int, role: UserRole, actor: User) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        if user.id == actor.id and role != UserRole.ADMIN:
            raise ValidationError("Administrators cannot remove their own admin role")

        user.role = role.value
        commit(self.db)
        self.db.refresh(user)
        logger.info(f"🔑 User {user.id} role set to {role.value} by {actor.email}")
        return user
