"""
Роутер для участков и допусков машинистов к участкам
"""
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from depot_compliance.auth import get_caller_context, require_manager_or_admin
from depot_compliance.config import get_settings
from depot_compliance.database import get_db
from depot_compliance.exceptions import DomainError
from depot_compliance.logger import logger
from depot_compliance.routers.deps import get_due_soon_threshold
from depot_compliance.schemas import (
    RouteSectionCreate,
    RouteSectionUpdate,
    RouteSectionResponse,
    RouteSectionListResponse,
    RouteAuthCreate,
    RouteAuthUpdate,
    RouteAuthResponse,
    RouteAuthListResponse,
    MessageResponse,
)
from depot_compliance.services.access_scope import CallerContext
from depot_compliance.services.route_service import RouteService, build_route_auth_response
from depot_compliance.utils.date_utils import utc_today

router = APIRouter(prefix="/api/v1/route-auth", tags=["Допуски к участкам"])


# ==================== Участки ====================

@router.get("/sections", response_model=RouteSectionListResponse)
async def get_sections(
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context)
):
    """
    Общие предопределенные участки и участки своего депо
    """
    sections, total = RouteService(db).get_sections(caller)
    return RouteSectionListResponse(
        total=total,
        items=[RouteSectionResponse.model_validate(section) for section in sections]
    )


@router.get("/sections/{section_id}", response_model=RouteSectionResponse)
async def get_section(
    section_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context)
):
    return RouteService(db).get_section(caller, section_id)


@router.post("/sections", response_model=RouteSectionResponse, status_code=status.HTTP_201_CREATED)
async def create_section(
    section_data: RouteSectionCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    """
    Создание участка (у менеджера участок привязывается к его депо)
    """
    try:
        return RouteService(db).create_section(caller, **section_data.model_dump())
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при создании участка: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при создании участка"
        )


@router.patch("/sections/{section_id}", response_model=RouteSectionResponse)
async def update_section(
    section_id: int,
    section_data: RouteSectionUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    """
    Обновление участка (предопределенные участки не изменяются)
    """
    try:
        return RouteService(db).update_section(caller, section_id, **section_data.model_dump(exclude_unset=True))
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при обновлении участка {section_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при обновлении участка"
        )


@router.delete("/sections/{section_id}", response_model=MessageResponse)
async def delete_section(
    section_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    try:
        RouteService(db).delete_section(caller, section_id)
        return MessageResponse(message="Участок удален")
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при удалении участка {section_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при удалении участка"
        )


# ==================== Допуски к участкам ====================

@router.get("/expiring", response_model=List[RouteAuthResponse])
async def get_expiring_auths(
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    """
    Допуски, истекающие в ближайшие месяцы (окно задается настройкой)
    """
    today = utc_today()
    window_months = get_settings().route_expiring_window_months
    auths = RouteService(db).get_expiring(caller, today, window_months)
    return [build_route_auth_response(auth, today, threshold_days) for auth in auths]


@router.get("", response_model=RouteAuthListResponse)
async def get_auths(
    driver_profile_id: Optional[int] = Query(None, description="Фильтр по машинисту"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    auths, total = RouteService(db).get_auths(
        caller, driver_profile_id=driver_profile_id, skip=skip, limit=limit
    )
    today = utc_today()
    return RouteAuthListResponse(
        total=total,
        items=[build_route_auth_response(auth, today, threshold_days) for auth in auths]
    )


@router.get("/{auth_id}", response_model=RouteAuthResponse)
async def get_auth(
    auth_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    auth = RouteService(db).get_auth(caller, auth_id)
    return build_route_auth_response(auth, utc_today(), threshold_days)


@router.post("", response_model=RouteAuthResponse, status_code=status.HTTP_201_CREATED)
async def create_auth(
    auth_data: RouteAuthCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    """
    Выдача допуска машинисту к участку

    Дата окончания должна быть строго позже даты выдачи.
    """
    try:
        auth = RouteService(db).create_auth(caller, **auth_data.model_dump())
        return build_route_auth_response(auth, utc_today(), threshold_days)
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при создании допуска к участку: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при создании допуска к участку"
        )


@router.patch("/{auth_id}", response_model=RouteAuthResponse)
async def update_auth(
    auth_id: int,
    auth_data: RouteAuthUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    try:
        auth = RouteService(db).update_auth(caller, auth_id, **auth_data.model_dump(exclude_unset=True))
        return build_route_auth_response(auth, utc_today(), threshold_days)
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при обновлении допуска к участку {auth_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при обновлении допуска к участку"
        )


@router.delete("/{auth_id}", response_model=MessageResponse)
async def delete_auth(
    auth_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    try:
        RouteService(db).delete_auth(caller, auth_id)
        return MessageResponse(message="Допуск к участку удален")
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при удалении допуска к участку {auth_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при удалении допуска к участку"
        )
