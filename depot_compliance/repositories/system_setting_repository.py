"""
Репозиторий системных настроек
"""
from sqlalchemy.orm import Session
from typing import Optional, List
from depot_compliance.models import SystemSetting


class SystemSettingRepository:
    """
    Репозиторий системных настроек
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_key(self, key: str) -> Optional[SystemSetting]:
        return self.db.query(SystemSetting).filter(SystemSetting.key == key).first()

    def get_all(self) -> List[SystemSetting]:
        """
        Все настройки по ключу
        """
        return self.db.query(SystemSetting).order_by(SystemSetting.key.asc()).all()

    def create(self, key: str, value: str, description: Optional[str] = None, updated_by: Optional[int] = None) -> SystemSetting:
        setting = SystemSetting(key=key, value=value, description=description, updated_by=updated_by)
        self.db.add(setting)
        self.db.commit()
        self.db.refresh(setting)
        return setting

    def save(self, setting: SystemSetting) -> SystemSetting:
        self.db.commit()
        self.db.refresh(setting)
        return setting

    def create_if_missing(self, key: str, value: str, description: Optional[str] = None) -> bool:
        """
        Создание настройки, если ее нет (существующее значение не меняется)

        Returns:
            True если настройка создана
        """
        if self.get_by_key(key) is not None:
            return False
        self.db.add(SystemSetting(key=key, value=value, description=description))
        self.db.commit()
        return True
