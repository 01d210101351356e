"""
Общие зависимости роутеров
"""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from depot_compliance.config import get_settings
from depot_compliance.database import get_db
from depot_compliance.services.cache_service import SettingsCache, build_settings_cache
from depot_compliance.services.system_settings_service import SystemSettingsService, DUE_SOON_THRESHOLD_DAYS


def get_settings_cache(request: Request) -> SettingsCache:
    """
    Кэш системных настроек приложения (создается при запуске)
    """
    cache = getattr(request.app.state, "settings_cache", None)
    if cache is None:
        cache = build_settings_cache(get_settings())
        request.app.state.settings_cache = cache
    return cache


def get_system_settings_service(
    db: Session = Depends(get_db),
    cache: SettingsCache = Depends(get_settings_cache)
) -> SystemSettingsService:
    return SystemSettingsService(db, cache)


def get_due_soon_threshold(
    settings_service: SystemSettingsService = Depends(get_system_settings_service)
) -> int:
    """
    Порог статуса DUE_SOON в днях для ответов API
    """
    return settings_service.get_int_or_default(DUE_SOON_THRESHOLD_DAYS)
