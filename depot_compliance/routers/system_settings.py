"""
Роутер для управления системными настройками
Доступен только суперадминистраторам
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from depot_compliance.auth import require_super_admin
from depot_compliance.exceptions import DomainError
from depot_compliance.logger import logger
from depot_compliance.routers.deps import get_system_settings_service
from depot_compliance.schemas import SystemSettingCreate, SystemSettingUpdate, SystemSettingResponse
from depot_compliance.services.access_scope import CallerContext
from depot_compliance.services.system_settings_service import SystemSettingsService

router = APIRouter(prefix="/api/v1/system-settings", tags=["Системные настройки"])


@router.get("", response_model=List[SystemSettingResponse])
async def get_system_settings(
    service: SystemSettingsService = Depends(get_system_settings_service),
    caller: CallerContext = Depends(require_super_admin)
):
    return service.get_all_settings()


@router.get("/{key}", response_model=SystemSettingResponse)
async def get_system_setting(
    key: str,
    service: SystemSettingsService = Depends(get_system_settings_service),
    caller: CallerContext = Depends(require_super_admin)
):
    return service.get_setting_record(key)


@router.post("", response_model=SystemSettingResponse, status_code=status.HTTP_201_CREATED)
async def create_system_setting(
    setting_data: SystemSettingCreate,
    service: SystemSettingsService = Depends(get_system_settings_service),
    caller: CallerContext = Depends(require_super_admin)
):
    try:
        return service.create_setting(
            setting_data.key,
            setting_data.value,
            description=setting_data.description,
            user_id=caller.user_id
        )
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при создании системной настройки: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при создании системной настройки"
        )


@router.patch("/{key}", response_model=SystemSettingResponse)
async def update_system_setting(
    key: str,
    setting_data: SystemSettingUpdate,
    service: SystemSettingsService = Depends(get_system_settings_service),
    caller: CallerContext = Depends(require_super_admin)
):
    """
    Обновление значения настройки

    Кэш сбрасывается только для измененного ключа.
    """
    try:
        return service.update_setting(
            key,
            setting_data.value,
            description=setting_data.description,
            user_id=caller.user_id
        )
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при обновлении системной настройки {key}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при обновлении системной настройки"
        )
