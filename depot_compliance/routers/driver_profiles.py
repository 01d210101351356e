"""
Роутер для работы с профилями машинистов
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from depot_compliance.auth import get_caller_context, require_manager_or_admin
from depot_compliance.database import get_db
from depot_compliance.exceptions import DomainError
from depot_compliance.logger import logger
from depot_compliance.routers.deps import get_due_soon_threshold
from depot_compliance.schemas import (
    DriverProfileCreate,
    DriverProfileUpdate,
    DriverProfileResponse,
    DriverProfileListResponse,
    ComplianceResponse,
    RouteAuthResponse,
    MessageResponse,
)
from depot_compliance.services.access_scope import CallerContext
from depot_compliance.services.compliance_service import build_compliance_response
from depot_compliance.services.driver_profile_service import DriverProfileService
from depot_compliance.services.route_service import build_route_auth_response
from depot_compliance.utils.date_utils import utc_today

router = APIRouter(prefix="/api/v1/driver-profiles", tags=["Профили машинистов"])


@router.post("", response_model=DriverProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_driver_profile(
    profile_data: DriverProfileCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    """
    Создание профиля машиниста вместе с учетной записью

    Менеджер депо создает машинистов только в своем депо.
    """
    try:
        service = DriverProfileService(db)
        return service.create_profile(caller, **profile_data.model_dump())
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при создании профиля машиниста: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при создании профиля машиниста"
        )


@router.get("", response_model=DriverProfileListResponse)
async def get_driver_profiles(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context)
):
    """
    Список профилей машинистов в области видимости
    """
    profiles, total = DriverProfileService(db).get_profiles(caller, skip=skip, limit=limit)
    return DriverProfileListResponse(
        total=total,
        items=[DriverProfileResponse.model_validate(profile) for profile in profiles]
    )


@router.get("/{profile_id}", response_model=DriverProfileResponse)
async def get_driver_profile(
    profile_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context)
):
    return DriverProfileService(db).get_profile(caller, profile_id)


@router.get("/{profile_id}/compliance", response_model=List[ComplianceResponse])
async def get_driver_profile_compliance(
    profile_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    """
    Допуски машиниста со статусом срока
    """
    compliances = DriverProfileService(db).get_profile_compliances(caller, profile_id)
    today = utc_today()
    return [build_compliance_response(item, today, threshold_days) for item in compliances]


@router.get("/{profile_id}/route-auth", response_model=List[RouteAuthResponse])
async def get_driver_profile_route_auths(
    profile_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    """
    Допуски машиниста к участкам со статусом срока
    """
    auths = DriverProfileService(db).get_profile_route_auths(caller, profile_id)
    today = utc_today()
    return [build_route_auth_response(item, today, threshold_days) for item in auths]


@router.patch("/{profile_id}", response_model=DriverProfileResponse)
async def update_driver_profile(
    profile_id: int,
    profile_data: DriverProfileUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    """
    Обновление данных профиля машиниста
    """
    try:
        service = DriverProfileService(db)
        return service.update_profile(caller, profile_id, **profile_data.model_dump(exclude_unset=True))
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при обновлении профиля машиниста {profile_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при обновлении профиля машиниста"
        )


@router.delete("/{profile_id}", response_model=MessageResponse)
async def delete_driver_profile(
    profile_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    """
    Мягкое удаление профиля машиниста и его учетной записи
    """
    try:
        DriverProfileService(db).delete_profile(caller, profile_id)
        return MessageResponse(message="Профиль машиниста удален")
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при удалении профиля машиниста {profile_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при удалении профиля машиниста"
        )
