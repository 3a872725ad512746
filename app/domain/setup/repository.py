"""Setup repository - System flags and admin accounts"""

from typing import Any, Optional

from sqlalchemy.orm import Session

from ...models import SystemSetting, User, UserRole


class SetupRepository:
    @staticmethod
    def get_setting(db: Session, key: str) -> Optional[SystemSetting]:
        return db.query(SystemSetting).filter(SystemSetting.key == key).first()

    @staticmethod
    def set_setting(db: Session, key: str, value: Any) -> SystemSetting:
        setting = db.query(SystemSetting).filter(SystemSetting.key == key).first()
        if setting is None:
            setting = SystemSetting(key=key, value=value)
            db.add(setting)
        else:
            setting.value = value
        return setting

    @staticmethod
    def delete_setting(db: Session, key: str) -> None:
        db.query(SystemSetting).filter(SystemSetting.key == key).delete(synchronize_session=False)

    @staticmethod
    def count_admins(db: Session) -> int:
        return db.query(User).filter(User.role == UserRole.ADMIN.value).count()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()
