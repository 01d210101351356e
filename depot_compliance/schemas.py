"""
Pydantic схемы для валидации данных API
"""
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, date
from typing import Optional, Dict, Any
import json
import re

from depot_compliance.models import UserRole, AssetType


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _validate_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip().lower()
    if not _EMAIL_RE.match(value):
        raise ValueError("Некорректный email адрес")
    return value


# ==================== Аутентификация ====================

class LoginRequest(BaseModel):
    """
    Схема запроса на вход
    """
    email: str = Field(..., description="Email адрес")
    password: str = Field(..., description="Пароль")


class RefreshRequest(BaseModel):
    """
    Схема запроса на обновление access токена
    """
    refresh_token: str = Field(..., description="Refresh токен")


class TokenUser(BaseModel):
    """
    Данные пользователя, возвращаемые вместе с токеном
    """
    id: int
    email: str
    role: str
    depot_id: Optional[int] = None

    class Config:
        from_attributes = True


class Token(BaseModel):
    """
    Схема пары токенов доступа
    """
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: int
    user: TokenUser


# ==================== Депо ====================

class DepotBase(BaseModel):
    """
    Базовая схема депо
    """
    name: str = Field(..., min_length=1, max_length=200, description="Название депо")
    code: str = Field(..., min_length=1, max_length=50, description="Код депо")
    address: Optional[str] = Field(None, max_length=500, description="Адрес")


class DepotCreate(DepotBase):
    """
    Схема для создания депо
    """
    pass


class DepotUpdate(BaseModel):
    """
    Схема для обновления депо
    """
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    address: Optional[str] = Field(None, max_length=500)


class DepotResponse(DepotBase):
    """
    Схема ответа с данными депо
    """
    id: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DepotShort(BaseModel):
    """Краткие данные депо для вложенных ответов"""
    id: int
    name: str
    code: str

    class Config:
        from_attributes = True


class DepotListResponse(BaseModel):
    """
    Список депо с общим количеством
    """
    total: int
    items: list[DepotResponse]


# ==================== Пользователи ====================

class UserCreate(BaseModel):
    """
    Схема для создания пользователя
    """
    email: str = Field(..., description="Email адрес")
    password: str = Field(..., min_length=8, description="Пароль (минимум 8 символов)")
    role: UserRole = Field(..., description="Роль пользователя")
    depot_id: Optional[int] = Field(None, description="ID депо (обязательно для DEPOT_MANAGER и DRIVER)")

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: Optional[str]) -> Optional[str]:
        return _validate_email(value)


class UserUpdate(BaseModel):
    """
    Схема для обновления пользователя
    """
    email: Optional[str] = Field(None, description="Email адрес")
    password: Optional[str] = Field(None, min_length=8, description="Пароль")
    role: Optional[UserRole] = Field(None, description="Роль пользователя")
    depot_id: Optional[int] = Field(None, description="ID депо")

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: Optional[str]) -> Optional[str]:
        return _validate_email(value)


class UserResponse(BaseModel):
    """
    Схема ответа с данными пользователя
    """
    id: int
    email: str
    role: str
    depot_id: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """
    Список пользователей с общим количеством
    """
    total: int
    items: list[UserResponse]


class MessageResponse(BaseModel):
    """Простой ответ с сообщением"""
    message: str


# ==================== Профили машинистов ====================

class DriverProfileBase(BaseModel):
    """
    Базовая схема профиля машиниста
    """
    driver_name: str = Field(..., min_length=1, max_length=200, description="ФИО машиниста")
    designation: str = Field(..., min_length=1, max_length=200, description="Должность")
    basic_pay: int = Field(..., ge=0, description="Оклад")
    date_of_appointment: date = Field(..., description="Дата назначения")
    date_of_entry: date = Field(..., description="Дата вступления в должность")


class DriverProfileCreate(DriverProfileBase):
    """
    Схема для создания профиля машиниста вместе с учетной записью
    """
    email: str = Field(..., description="Email для входа")
    password: str = Field(..., min_length=8, description="Пароль (минимум 8 символов)")
    pf_number: str = Field(..., min_length=1, max_length=50, description="Табельный номер (PF)")
    depot_id: int = Field(..., description="ID депо")

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: Optional[str]) -> Optional[str]:
        return _validate_email(value)


class DriverProfileUpdate(BaseModel):
    """
    Схема для обновления профиля машиниста
    """
    driver_name: Optional[str] = Field(None, min_length=1, max_length=200)
    designation: Optional[str] = Field(None, min_length=1, max_length=200)
    basic_pay: Optional[int] = Field(None, ge=0)
    date_of_appointment: Optional[date] = None
    date_of_entry: Optional[date] = None


class DriverProfileResponse(DriverProfileBase):
    """
    Схема ответа с данными профиля машиниста
    """
    id: int
    user_id: int
    pf_number: str
    depot_id: int
    is_active: bool
    email: Optional[str] = None
    depot: Optional[DepotShort] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DriverProfileShort(BaseModel):
    """Краткие данные машиниста для вложенных ответов"""
    id: int
    driver_name: str
    pf_number: str
    depot_id: int

    class Config:
        from_attributes = True


class DriverProfileListResponse(BaseModel):
    """
    Список профилей машинистов с общим количеством
    """
    total: int
    items: list[DriverProfileResponse]


# ==================== Допуски ====================

class ComplianceTypeResponse(BaseModel):
    """
    Тип допуска
    """
    id: int
    name: str
    description: Optional[str] = None
    default_frequency_months: int

    class Config:
        from_attributes = True


class ComplianceCreate(BaseModel):
    """
    Схема для создания записи о допуске
    Срок (due_date) рассчитывается клиентом и сохраняется как передан
    """
    driver_profile_id: int = Field(..., description="ID профиля машиниста")
    compliance_type_id: int = Field(..., description="ID типа допуска")
    done_date: date = Field(..., description="Дата прохождения")
    due_date: date = Field(..., description="Срок следующего прохождения")
    frequency_months: int = Field(..., ge=1, description="Периодичность (мес.)")
    notes: Optional[str] = Field(None, description="Примечания")


class ComplianceUpdate(BaseModel):
    """
    Схема для обновления записи о допуске
    Изменение дат или периодичности суперадминистратором требует обоснования
    """
    done_date: Optional[date] = None
    due_date: Optional[date] = None
    frequency_months: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None
    override_reason: Optional[str] = Field(None, description="Причина изменения сроков")
    override_justification: Optional[str] = Field(None, description="Обоснование изменения сроков")


class ComplianceResponse(BaseModel):
    """
    Схема ответа с данными допуска
    """
    id: int
    driver_profile_id: int
    compliance_type_id: int
    done_date: date
    due_date: date
    frequency_months: int
    notes: Optional[str] = None
    is_active: bool
    status: Optional[str] = Field(None, description="CURRENT, DUE_SOON, OVERDUE")
    compliance_type: Optional[ComplianceTypeResponse] = None
    driver_profile: Optional[DriverProfileShort] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ComplianceListResponse(BaseModel):
    """
    Список допусков с общим количеством
    """
    total: int
    items: list[ComplianceResponse]


# ==================== Участки и допуски к участкам ====================

class RouteSectionCreate(BaseModel):
    """
    Схема для создания участка маршрута
    """
    code: str = Field(..., min_length=1, max_length=50, description="Код участка")
    name: str = Field(..., min_length=1, max_length=200, description="Название участка")
    description: Optional[str] = None
    depot_id: Optional[int] = Field(None, description="ID депо (для менеджера подставляется автоматически)")


class RouteSectionUpdate(BaseModel):
    """
    Схема для обновления участка маршрута
    """
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None


class RouteSectionResponse(BaseModel):
    """
    Участок маршрута
    """
    id: int
    code: str
    name: str
    description: Optional[str] = None
    is_predefined: bool
    depot_id: Optional[int] = None
    is_active: bool

    class Config:
        from_attributes = True


class RouteSectionListResponse(BaseModel):
    total: int
    items: list[RouteSectionResponse]


class RouteAuthCreate(BaseModel):
    """
    Схема для создания допуска к участку
    """
    driver_profile_id: int = Field(..., description="ID профиля машиниста")
    route_section_id: int = Field(..., description="ID участка")
    authorized_date: date = Field(..., description="Дата выдачи допуска")
    expiry_date: date = Field(..., description="Дата окончания допуска")


class RouteAuthUpdate(BaseModel):
    """
    Схема для обновления допуска к участку
    """
    authorized_date: Optional[date] = None
    expiry_date: Optional[date] = None


class RouteAuthResponse(BaseModel):
    """
    Допуск машиниста к участку
    """
    id: int
    driver_profile_id: int
    route_section_id: int
    authorized_date: date
    expiry_date: date
    is_active: bool
    status: Optional[str] = Field(None, description="CURRENT, DUE_SOON, OVERDUE")
    route_section: Optional[RouteSectionResponse] = None
    driver_profile: Optional[DriverProfileShort] = None

    class Config:
        from_attributes = True


class RouteAuthListResponse(BaseModel):
    total: int
    items: list[RouteAuthResponse]


# ==================== Оборудование и ТО ====================

class AssetCreate(BaseModel):
    """
    Схема для создания оборудования
    """
    asset_number: str = Field(..., min_length=1, max_length=100, description="Инвентарный номер")
    asset_type: AssetType = Field(..., description="Тип оборудования")
    depot_id: int = Field(..., description="ID депо")
    current_hours: Optional[int] = Field(None, ge=0, description="Текущая наработка")
    last_service_date: Optional[date] = None


class AssetUpdate(BaseModel):
    """
    Схема для обновления оборудования
    """
    asset_number: Optional[str] = Field(None, min_length=1, max_length=100)
    current_hours: Optional[int] = Field(None, ge=0)
    last_service_date: Optional[date] = None


class AssetResponse(BaseModel):
    """
    Оборудование депо
    """
    id: int
    asset_number: str
    asset_type: str
    depot_id: int
    current_hours: Optional[int] = None
    last_service_date: Optional[date] = None
    is_active: bool
    depot: Optional[DepotShort] = None

    class Config:
        from_attributes = True


class AssetListResponse(BaseModel):
    total: int
    items: list[AssetResponse]


class MaintenanceTypeResponse(BaseModel):
    """
    Вид технического обслуживания
    """
    id: int
    name: str
    description: Optional[str] = None
    frequency_days: Optional[int] = None
    frequency_hours: Optional[int] = None

    class Config:
        from_attributes = True


class MaintenanceScheduleCreate(BaseModel):
    """
    Схема для создания графика ТО
    """
    asset_id: int
    maintenance_type_id: int
    last_completed_date: Optional[date] = None
    next_due_date: Optional[date] = None
    last_completed_hours: Optional[int] = Field(None, ge=0)
    next_due_hours: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class MaintenanceScheduleUpdate(BaseModel):
    """
    Схема для обновления графика ТО
    """
    last_completed_date: Optional[date] = None
    next_due_date: Optional[date] = None
    last_completed_hours: Optional[int] = Field(None, ge=0)
    next_due_hours: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class MaintenanceScheduleResponse(BaseModel):
    """
    График ТО оборудования
    """
    id: int
    asset_id: int
    maintenance_type_id: int
    last_completed_date: Optional[date] = None
    next_due_date: Optional[date] = None
    last_completed_hours: Optional[int] = None
    next_due_hours: Optional[int] = None
    notes: Optional[str] = None
    is_active: bool
    status: Optional[str] = Field(None, description="Статус по дате: CURRENT, DUE_SOON, OVERDUE")
    due_by_hours: Optional[bool] = Field(None, description="Наработка достигла порога ТО")
    asset: Optional[AssetResponse] = None
    maintenance_type: Optional[MaintenanceTypeResponse] = None

    class Config:
        from_attributes = True


class MaintenanceScheduleListResponse(BaseModel):
    total: int
    items: list[MaintenanceScheduleResponse]


# ==================== Аудит ====================

class AuditLogResponse(BaseModel):
    """
    Запись журнала аудита
    """
    id: int
    user_id: Optional[int] = None
    depot_id: Optional[int] = None
    entity_type: str
    entity_id: str
    action: str
    old_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None
    depot: Optional[DepotShort] = None

    @field_validator("old_value", "new_value", mode="before")
    @classmethod
    def parse_json(cls, value):
        """В БД значения хранятся JSON-строкой"""
        if isinstance(value, str):
            return json.loads(value)
        return value

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    total: int
    items: list[AuditLogResponse]


# ==================== Уведомления ====================

class NotificationResponse(BaseModel):
    """
    Схема ответа с данными уведомления
    """
    id: int
    user_id: int
    title: str
    message: str
    category: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    """
    Список уведомлений
    """
    total: int
    unread_count: int
    items: list[NotificationResponse]


class NotificationUpdateResult(BaseModel):
    """Количество обновленных уведомлений"""
    updated: int


class NotificationRunResult(BaseModel):
    """
    Результат ручного запуска проверки сроков
    """
    due_soon_records: int
    overdue_records: int
    notifications_created: int


# ==================== Системные настройки ====================

class SystemSettingCreate(BaseModel):
    """
    Схема для создания системной настройки
    """
    key: str = Field(..., min_length=1, max_length=100, description="Ключ настройки")
    value: str = Field(..., min_length=1, description="Значение настройки")
    description: Optional[str] = Field(None, max_length=500)


class SystemSettingUpdate(BaseModel):
    """
    Схема для обновления системной настройки
    """
    value: str = Field(..., min_length=1, description="Значение настройки")
    description: Optional[str] = Field(None, max_length=500)


class SystemSettingResponse(BaseModel):
    """
    Системная настройка
    """
    id: int
    key: str
    value: str
    description: Optional[str] = None
    updated_by: Optional[int] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
