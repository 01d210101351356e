"""
Модели базы данных для учета допусков машинистов депо
"""
from enum import Enum
from sqlalchemy import Column, Integer, String, DateTime, Date, Index, ForeignKey, Text, Boolean, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from depot_compliance.database import Base


class UserRole(str, Enum):
    """Роли пользователей"""
    SUPER_ADMIN = "SUPER_ADMIN"
    DEPOT_MANAGER = "DEPOT_MANAGER"
    DRIVER = "DRIVER"


class AssetType(str, Enum):
    """Типы оборудования депо"""
    LOCOMOTIVE = "LOCOMOTIVE"
    COACH = "COACH"
    WAGON = "WAGON"
    EQUIPMENT = "EQUIPMENT"
    OTHER = "OTHER"


class AuditAction(str, Enum):
    """Действия, фиксируемые в журнале аудита"""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class NotificationCategory(str, Enum):
    """Категории уведомлений планировщика"""
    COMPLIANCE_DUE_SOON = "COMPLIANCE_DUE_SOON"
    COMPLIANCE_OVERDUE = "COMPLIANCE_OVERDUE"


# Условие "активной" записи для частичных уникальных индексов
_ACTIVE_ROW_PG = text("is_active = true AND deleted_at IS NULL")
_ACTIVE_ROW_SQLITE = text("is_active = 1 AND deleted_at IS NULL")


class Depot(Base):
    """
    Модель депо (организационная единица)
    """
    __tablename__ = "depots"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(200), nullable=False, comment="Название депо")
    code = Column(String(50), nullable=False, unique=True, index=True, comment="Код депо")
    address = Column(String(500), comment="Адрес")

    # Мягкое удаление
    is_active = Column(Boolean, default=True, nullable=False, index=True, comment="Активно")
    deleted_at = Column(DateTime, comment="Дата удаления")

    created_at = Column(DateTime, server_default=func.now(), comment="Дата создания")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), comment="Дата обновления")

    users = relationship("User", back_populates="depot")
    driver_profiles = relationship("DriverProfile", back_populates="depot")
    assets = relationship("Asset", back_populates="depot")


class User(Base):
    """
    Модель пользователя системы
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    email = Column(String(255), nullable=False, unique=True, index=True, comment="Email адрес")
    hashed_password = Column(String(255), nullable=False, comment="Хешированный пароль")

    # SUPER_ADMIN, DEPOT_MANAGER, DRIVER
    role = Column(String(50), nullable=False, index=True, comment="Роль пользователя")

    # Для SUPER_ADMIN депо не задается
    depot_id = Column(Integer, ForeignKey("depots.id", ondelete="SET NULL"), nullable=True, index=True, comment="ID депо")

    is_active = Column(Boolean, default=True, nullable=False, index=True, comment="Активен")
    deleted_at = Column(DateTime, comment="Дата удаления")

    created_at = Column(DateTime, server_default=func.now(), comment="Дата создания")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), comment="Дата обновления")
    last_login = Column(DateTime, comment="Дата последнего входа")

    depot = relationship("Depot", back_populates="users")
    driver_profile = relationship("DriverProfile", back_populates="user", uselist=False)

    __table_args__ = (
        Index('idx_users_role_depot', 'role', 'depot_id'),
    )


class DriverProfile(Base):
    """
    Профиль машиниста (1:1 с пользователем роли DRIVER)
    """
    __tablename__ = "driver_profiles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, comment="ID пользователя")
    pf_number = Column(String(50), nullable=False, unique=True, index=True, comment="Табельный номер (PF)")
    driver_name = Column(String(200), nullable=False, index=True, comment="ФИО машиниста")
    designation = Column(String(200), nullable=False, comment="Должность")
    basic_pay = Column(Integer, nullable=False, comment="Оклад")
    date_of_appointment = Column(Date, nullable=False, comment="Дата назначения")
    date_of_entry = Column(Date, nullable=False, comment="Дата вступления в должность")
    depot_id = Column(Integer, ForeignKey("depots.id"), nullable=False, index=True, comment="ID депо")

    is_active = Column(Boolean, default=True, nullable=False, index=True, comment="Активен")
    deleted_at = Column(DateTime, comment="Дата удаления")

    created_at = Column(DateTime, server_default=func.now(), comment="Дата создания")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), comment="Дата обновления")

    user = relationship("User", back_populates="driver_profile")
    depot = relationship("Depot", back_populates="driver_profiles")
    compliances = relationship("DriverCompliance", back_populates="driver_profile")
    route_auths = relationship("DriverRouteAuth", back_populates="driver_profile")

    @property
    def email(self):
        """Email учетной записи машиниста"""
        return self.user.email if self.user else None


class ComplianceType(Base):
    """
    Справочник типов допусков (PME, GRS, TR_4, OC ...)
    """
    __tablename__ = "compliance_types"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(50), nullable=False, unique=True, index=True, comment="Код типа допуска")
    description = Column(String(500), comment="Описание")
    default_frequency_months = Column(Integer, nullable=False, comment="Периодичность по умолчанию (мес.)")

    is_active = Column(Boolean, default=True, nullable=False, comment="Активен")
    deleted_at = Column(DateTime, comment="Дата удаления")

    created_at = Column(DateTime, server_default=func.now(), comment="Дата создания")


class DriverCompliance(Base):
    """
    Запись о прохождении периодической проверки машинистом
    """
    __tablename__ = "driver_compliances"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    driver_profile_id = Column(Integer, ForeignKey("driver_profiles.id"), nullable=False, index=True, comment="ID профиля машиниста")
    compliance_type_id = Column(Integer, ForeignKey("compliance_types.id"), nullable=False, index=True, comment="ID типа допуска")

    # Срок рассчитывается клиентом как done_date + frequency_months и хранится как передан
    done_date = Column(Date, nullable=False, comment="Дата прохождения")
    due_date = Column(Date, nullable=False, index=True, comment="Срок следующего прохождения")
    frequency_months = Column(Integer, nullable=False, comment="Периодичность (мес.)")
    notes = Column(Text, comment="Примечания")

    is_active = Column(Boolean, default=True, nullable=False, index=True, comment="Активна")
    deleted_at = Column(DateTime, comment="Дата удаления")

    created_at = Column(DateTime, server_default=func.now(), comment="Дата создания")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), comment="Дата обновления")

    driver_profile = relationship("DriverProfile", back_populates="compliances")
    compliance_type = relationship("ComplianceType")

    __table_args__ = (
        # Не более одной активной записи на пару машинист + тип допуска
        Index(
            'uq_driver_compliance_active_pair',
            'driver_profile_id', 'compliance_type_id',
            unique=True,
            postgresql_where=_ACTIVE_ROW_PG,
            sqlite_where=_ACTIVE_ROW_SQLITE,
        ),
        Index('idx_driver_compliance_due_active', 'due_date', 'is_active'),
    )


class RouteSection(Base):
    """
    Участок маршрута. Предопределенные участки без депо общие для всех
    """
    __tablename__ = "route_sections"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    code = Column(String(50), nullable=False, index=True, comment="Код участка")
    name = Column(String(200), nullable=False, comment="Название участка")
    description = Column(Text, comment="Описание")
    is_predefined = Column(Boolean, default=False, nullable=False, comment="Предопределенный (неизменяемый)")
    depot_id = Column(Integer, ForeignKey("depots.id"), nullable=True, index=True, comment="ID депо (NULL - общий участок)")

    is_active = Column(Boolean, default=True, nullable=False, index=True, comment="Активен")
    deleted_at = Column(DateTime, comment="Дата удаления")

    created_at = Column(DateTime, server_default=func.now(), comment="Дата создания")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), comment="Дата обновления")

    depot = relationship("Depot")


class DriverRouteAuth(Base):
    """
    Допуск машиниста к работе на участке маршрута
    """
    __tablename__ = "driver_route_auths"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    driver_profile_id = Column(Integer, ForeignKey("driver_profiles.id"), nullable=False, index=True, comment="ID профиля машиниста")
    route_section_id = Column(Integer, ForeignKey("route_sections.id"), nullable=False, index=True, comment="ID участка")
    authorized_date = Column(Date, nullable=False, comment="Дата выдачи допуска")
    expiry_date = Column(Date, nullable=False, index=True, comment="Дата окончания допуска")

    is_active = Column(Boolean, default=True, nullable=False, index=True, comment="Активен")
    deleted_at = Column(DateTime, comment="Дата удаления")

    created_at = Column(DateTime, server_default=func.now(), comment="Дата создания")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), comment="Дата обновления")

    driver_profile = relationship("DriverProfile", back_populates="route_auths")
    route_section = relationship("RouteSection")

    __table_args__ = (
        Index(
            'uq_driver_route_auth_active_pair',
            'driver_profile_id', 'route_section_id',
            unique=True,
            postgresql_where=_ACTIVE_ROW_PG,
            sqlite_where=_ACTIVE_ROW_SQLITE,
        ),
    )


class Asset(Base):
    """
    Оборудование депо
    """
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    asset_number = Column(String(100), nullable=False, index=True, comment="Инвентарный номер")
    asset_type = Column(String(50), nullable=False, comment="Тип оборудования")
    depot_id = Column(Integer, ForeignKey("depots.id"), nullable=False, index=True, comment="ID депо")
    current_hours = Column(Integer, comment="Текущая наработка (моточасы)")
    last_service_date = Column(Date, comment="Дата последнего обслуживания")

    is_active = Column(Boolean, default=True, nullable=False, index=True, comment="Активно")
    deleted_at = Column(DateTime, comment="Дата удаления")

    created_at = Column(DateTime, server_default=func.now(), comment="Дата создания")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), comment="Дата обновления")

    depot = relationship("Depot", back_populates="assets")
    maintenance_schedules = relationship("MaintenanceSchedule", back_populates="asset")


class MaintenanceType(Base):
    """
    Справочник видов технического обслуживания
    """
    __tablename__ = "maintenance_types"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(200), nullable=False, unique=True, comment="Название вида ТО")
    description = Column(String(500), comment="Описание")
    frequency_days = Column(Integer, comment="Периодичность по дням")
    frequency_hours = Column(Integer, comment="Периодичность по моточасам")

    is_active = Column(Boolean, default=True, nullable=False, comment="Активен")
    deleted_at = Column(DateTime, comment="Дата удаления")

    created_at = Column(DateTime, server_default=func.now(), comment="Дата создания")


class MaintenanceSchedule(Base):
    """
    График технического обслуживания оборудования
    """
    __tablename__ = "maintenance_schedules"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    asset_id = Column(Integer, ForeignKey("assets.id"), nullable=False, index=True, comment="ID оборудования")
    maintenance_type_id = Column(Integer, ForeignKey("maintenance_types.id"), nullable=False, index=True, comment="ID вида ТО")

    # Учет по датам
    last_completed_date = Column(Date, comment="Дата последнего ТО")
    next_due_date = Column(Date, index=True, comment="Дата следующего ТО")

    # Учет по моточасам
    last_completed_hours = Column(Integer, comment="Наработка на момент последнего ТО")
    next_due_hours = Column(Integer, comment="Наработка для следующего ТО")

    notes = Column(Text, comment="Примечания")

    is_active = Column(Boolean, default=True, nullable=False, index=True, comment="Активен")
    deleted_at = Column(DateTime, comment="Дата удаления")

    created_at = Column(DateTime, server_default=func.now(), comment="Дата создания")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), comment="Дата обновления")

    asset = relationship("Asset", back_populates="maintenance_schedules")
    maintenance_type = relationship("MaintenanceType")


class AuditLog(Base):
    """
    Журнал аудита изменений (только добавление записей)
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True, comment="ID пользователя")
    depot_id = Column(Integer, ForeignKey("depots.id", ondelete="SET NULL"), nullable=True, index=True, comment="ID депо")

    entity_type = Column(String(100), nullable=False, index=True, comment="Тип сущности")
    entity_id = Column(String(100), nullable=False, index=True, comment="ID сущности")
    action = Column(String(20), nullable=False, index=True, comment="Действие: CREATE, UPDATE, DELETE")

    # JSON со значениями до и после изменения
    old_value = Column(Text, comment="JSON значения до изменения")
    new_value = Column(Text, comment="JSON значения после изменения")

    ip_address = Column(String(50), comment="IP адрес")
    user_agent = Column(String(500), comment="User Agent")

    created_at = Column(DateTime, server_default=func.now(), index=True, comment="Дата создания")

    depot = relationship("Depot")

    __table_args__ = (
        Index('idx_audit_logs_entity', 'entity_type', 'entity_id'),
        Index('idx_audit_logs_depot_created', 'depot_id', 'created_at'),
    )


class Notification(Base):
    """
    Уведомления пользователей
    """
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete='CASCADE'), nullable=False, index=True, comment="ID пользователя")

    title = Column(String(300), nullable=False, comment="Заголовок уведомления")
    message = Column(Text, nullable=False, comment="Текст уведомления")
    category = Column(String(100), index=True, comment="Категория уведомления: COMPLIANCE_DUE_SOON, COMPLIANCE_OVERDUE")

    is_read = Column(Boolean, default=False, nullable=False, index=True, comment="Прочитано ли уведомление")
    read_at = Column(DateTime, comment="Дата и время прочтения")
    created_at = Column(DateTime, server_default=func.now(), index=True, comment="Дата создания")

    # Связанная сущность (опционально)
    related_entity_type = Column(String(100), comment="Тип связанной сущности")
    related_entity_id = Column(Integer, comment="ID связанной сущности")

    user = relationship("User", backref="notifications")

    __table_args__ = (
        Index('idx_notifications_user_created', 'user_id', 'created_at'),
        Index('idx_notifications_user_read', 'user_id', 'is_read'),
        Index('idx_notifications_related', 'related_entity_type', 'related_entity_id'),
    )


class SystemSetting(Base):
    """
    Системные настройки (ключ-значение)
    """
    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    key = Column(String(100), nullable=False, unique=True, index=True, comment="Ключ настройки")
    value = Column(Text, nullable=False, comment="Значение настройки")
    description = Column(String(500), comment="Описание настройки")
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, comment="ID пользователя, изменившего настройку")

    created_at = Column(DateTime, server_default=func.now(), comment="Дата создания")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), comment="Дата обновления")
