"""
Роутер для графиков технического обслуживания оборудования
"""
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from depot_compliance.auth import get_caller_context, require_manager_or_admin
from depot_compliance.database import get_db
from depot_compliance.exceptions import DomainError
from depot_compliance.logger import logger
from depot_compliance.routers.deps import get_due_soon_threshold
from depot_compliance.schemas import (
    MaintenanceTypeResponse,
    MaintenanceScheduleCreate,
    MaintenanceScheduleUpdate,
    MaintenanceScheduleResponse,
    MaintenanceScheduleListResponse,
    MessageResponse,
)
from depot_compliance.services.access_scope import CallerContext
from depot_compliance.services.maintenance_service import MaintenanceService, build_maintenance_response
from depot_compliance.utils.date_utils import utc_today

router = APIRouter(prefix="/api/v1/maintenance", tags=["Техническое обслуживание"])


@router.get("/types", response_model=List[MaintenanceTypeResponse])
async def get_maintenance_types(
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context)
):
    return MaintenanceService(db).get_types()


@router.get("", response_model=MaintenanceScheduleListResponse)
async def get_schedules(
    asset_id: Optional[int] = Query(None, description="Фильтр по оборудованию"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    """
    Графики ТО в области видимости со статусом по дате и наработке
    """
    schedules, total = MaintenanceService(db).get_schedules(caller, asset_id=asset_id, skip=skip, limit=limit)
    today = utc_today()
    return MaintenanceScheduleListResponse(
        total=total,
        items=[build_maintenance_response(schedule, today, threshold_days) for schedule in schedules]
    )


@router.get("/{schedule_id}", response_model=MaintenanceScheduleResponse)
async def get_schedule(
    schedule_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    schedule = MaintenanceService(db).get_schedule(caller, schedule_id)
    return build_maintenance_response(schedule, utc_today(), threshold_days)


@router.post("", response_model=MaintenanceScheduleResponse, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    schedule_data: MaintenanceScheduleCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    """
    Создание графика ТО

    Незаданные срок и наработка следующего ТО рассчитываются по типу ТО.
    """
    try:
        schedule = MaintenanceService(db).create_schedule(caller, **schedule_data.model_dump())
        return build_maintenance_response(schedule, utc_today(), threshold_days)
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при создании графика ТО: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при создании графика ТО"
        )


@router.patch("/{schedule_id}", response_model=MaintenanceScheduleResponse)
async def update_schedule(
    schedule_id: int,
    schedule_data: MaintenanceScheduleUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    try:
        schedule = MaintenanceService(db).update_schedule(
            caller, schedule_id, **schedule_data.model_dump(exclude_unset=True)
        )
        return build_maintenance_response(schedule, utc_today(), threshold_days)
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при обновлении графика ТО {schedule_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при обновлении графика ТО"
        )


@router.delete("/{schedule_id}", response_model=MessageResponse)
async def delete_schedule(
    schedule_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    try:
        MaintenanceService(db).delete_schedule(caller, schedule_id)
        return MessageResponse(message="График ТО удален")
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при удалении графика ТО {schedule_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при удалении графика ТО"
        )
