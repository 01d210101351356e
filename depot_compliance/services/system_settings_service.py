"""
Сервис системных настроек

Значения читаются через кэш, переданный при создании сервиса.
Изменение настройки сбрасывает только ее ключ в кэше.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from depot_compliance.exceptions import NotFoundError, ConflictError, BusinessValidationError
from depot_compliance.logger import logger
from depot_compliance.models import SystemSetting
from depot_compliance.repositories.system_setting_repository import SystemSettingRepository
from depot_compliance.services.cache_service import SettingsCache


DUE_SOON_THRESHOLD_DAYS = "DUE_SOON_THRESHOLD_DAYS"
NOTIFICATION_BEFORE_DAYS = "NOTIFICATION_BEFORE_DAYS"
TIMEZONE = "TIMEZONE"

# Ключ -> (значение, описание)
DEFAULT_SETTINGS = {
    DUE_SOON_THRESHOLD_DAYS: ("7", "Порог статуса 'скоро истекает' в днях"),
    NOTIFICATION_BEFORE_DAYS: ("2", "За сколько дней до срока отправлять уведомление"),
    TIMEZONE: ("Asia/Kolkata", "Часовой пояс отображения"),
}

# Количество дней: целое неотрицательное число
NUMERIC_SETTINGS = (DUE_SOON_THRESHOLD_DAYS, NOTIFICATION_BEFORE_DAYS)


def validate_setting_value(key: str, value: str) -> None:
    """
    Проверка значения числовых настроек

    Raises:
        BusinessValidationError: Значение не является целым неотрицательным числом
    """
    if key not in NUMERIC_SETTINGS:
        return
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise BusinessValidationError(f"Значение настройки {key} не является числом: {value}")
    if number < 0:
        raise BusinessValidationError(f"Значение настройки {key} не может быть отрицательным: {value}")


class SystemSettingsService:
    """
    Сервис системных настроек
    """

    def __init__(self, db: Session, cache: SettingsCache):
        self.db = db
        self.cache = cache
        self.setting_repo = SystemSettingRepository(db)

    def initialize_defaults(self) -> int:
        """
        Создание настроек по умолчанию (существующие значения не меняются)

        Returns:
            int: Количество созданных настроек
        """
        created = 0
        for key, (value, description) in DEFAULT_SETTINGS.items():
            if self.setting_repo.create_if_missing(key, value, description):
                created += 1
        if created:
            logger.info("Созданы системные настройки по умолчанию", extra={"created_count": created})
        return created

    def get_setting(self, key: str) -> str:
        """
        Значение настройки (из кэша или БД)

        Raises:
            NotFoundError: Настройка не существует
        """
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        setting = self.setting_repo.get_by_key(key)
        if not setting:
            raise NotFoundError(f"Настройка {key} не найдена")

        self.cache.set(key, setting.value)
        return setting.value

    def get_setting_as_int(self, key: str) -> int:
        """
        Числовое значение настройки

        Raises:
            BusinessValidationError: Значение не является числом
        """
        value = self.get_setting(key)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise BusinessValidationError(f"Значение настройки {key} не является числом: {value}")

    def get_int_or_default(self, key: str) -> int:
        """
        Числовое значение настройки; при отсутствии или ошибке - значение по умолчанию
        """
        try:
            value = self.get_setting_as_int(key)
            validate_setting_value(key, str(value))
            return value
        except (NotFoundError, BusinessValidationError) as e:
            default = int(DEFAULT_SETTINGS[key][0])
            logger.warning(
                f"Используется значение настройки по умолчанию: {e.message}",
                extra={"key": key, "default": default}
            )
            return default

    def get_all_settings(self) -> List[SystemSetting]:
        return self.setting_repo.get_all()

    def get_setting_record(self, key: str) -> SystemSetting:
        setting = self.setting_repo.get_by_key(key)
        if not setting:
            raise NotFoundError(f"Настройка {key} не найдена")
        return setting

    def create_setting(
        self,
        key: str,
        value: str,
        description: Optional[str] = None,
        user_id: Optional[int] = None
    ) -> SystemSetting:
        """
        Создание настройки

        Raises:
            ConflictError: Настройка с таким ключом уже существует
            BusinessValidationError: Недопустимое значение числовой настройки
        """
        validate_setting_value(key, value)
        if self.setting_repo.get_by_key(key):
            raise ConflictError(f"Настройка {key} уже существует")

        setting = self.setting_repo.create(key=key, value=value, description=description, updated_by=user_id)
        self.cache.invalidate(key)
        logger.info("Создана системная настройка", extra={"key": key, "user_id": user_id})
        return setting

    def update_setting(
        self,
        key: str,
        value: str,
        description: Optional[str] = None,
        user_id: Optional[int] = None
    ) -> SystemSetting:
        """
        Обновление значения настройки

        Raises:
            NotFoundError: Настройка не существует
            BusinessValidationError: Недопустимое значение числовой настройки
        """
        setting = self.get_setting_record(key)
        validate_setting_value(key, value)

        setting.value = value
        if description is not None:
            setting.description = description
        setting.updated_by = user_id
        setting = self.setting_repo.save(setting)

        self.cache.invalidate(key)
        logger.info("Обновлена системная настройка", extra={"key": key, "user_id": user_id})
        return setting
