"""
Репозитории для работы с данными
"""
from .asset_repository import AssetRepository, MaintenanceRepository
from .audit_repository import AuditRepository
from .compliance_repository import ComplianceRepository
from .depot_repository import DepotRepository
from .driver_profile_repository import DriverProfileRepository
from .notification_repository import NotificationRepository
from .route_repository import RouteRepository
from .system_setting_repository import SystemSettingRepository
from .user_repository import UserRepository

__all__ = [
    "AssetRepository",
    "MaintenanceRepository",
    "AuditRepository",
    "ComplianceRepository",
    "DepotRepository",
    "DriverProfileRepository",
    "NotificationRepository",
    "RouteRepository",
    "SystemSettingRepository",
    "UserRepository",
]
