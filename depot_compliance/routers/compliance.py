"""
Роутер для работы с допусками машинистов (медкомиссии, экзамены и т.п.)
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
    ComplianceCreate,
    ComplianceUpdate,
    ComplianceResponse,
    ComplianceListResponse,
    ComplianceTypeResponse,
    MessageResponse,
)
from depot_compliance.services.access_scope import CallerContext
from depot_compliance.services.compliance_service import ComplianceService, build_compliance_response
from depot_compliance.utils.date_utils import utc_today

router = APIRouter(prefix="/api/v1/driver-compliance", tags=["Допуски машинистов"])


def get_compliance_service(db: Session = Depends(get_db)) -> ComplianceService:
    settings = get_settings()
    return ComplianceService(
        db,
        require_manager_justification=settings.require_override_justification_for_managers
    )


@router.get("/types", response_model=List[ComplianceTypeResponse])
async def get_compliance_types(
    service: ComplianceService = Depends(get_compliance_service),
    caller: CallerContext = Depends(get_caller_context)
):
    """
    Справочник активных типов допусков
    """
    return service.get_types()


@router.get("", response_model=ComplianceListResponse)
async def get_compliances(
    driver_profile_id: Optional[int] = Query(None, description="Фильтр по машинисту"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    service: ComplianceService = Depends(get_compliance_service),
    caller: CallerContext = Depends(get_caller_context),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    """
    Список допусков в области видимости со статусом срока
    """
    compliances, total = service.get_compliances(
        caller, driver_profile_id=driver_profile_id, skip=skip, limit=limit
    )
    today = utc_today()
    return ComplianceListResponse(
        total=total,
        items=[build_compliance_response(item, today, threshold_days) for item in compliances]
    )


@router.get("/{compliance_id}", response_model=ComplianceResponse)
async def get_compliance(
    compliance_id: int,
    service: ComplianceService = Depends(get_compliance_service),
    caller: CallerContext = Depends(get_caller_context),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    compliance = service.get_compliance(caller, compliance_id)
    return build_compliance_response(compliance, utc_today(), threshold_days)


@router.post("", response_model=ComplianceResponse, status_code=status.HTTP_201_CREATED)
async def create_compliance(
    compliance_data: ComplianceCreate,
    service: ComplianceService = Depends(get_compliance_service),
    caller: CallerContext = Depends(require_manager_or_admin),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    """
    Создание записи о допуске

    Для пары машинист + тип допускается только одна активная запись.
    """
    try:
        compliance = service.create_compliance(caller, **compliance_data.model_dump())
        return build_compliance_response(compliance, utc_today(), threshold_days)
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при создании записи о допуске: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при создании записи о допуске"
        )


@router.patch("/{compliance_id}", response_model=ComplianceResponse)
async def update_compliance(
    compliance_id: int,
    compliance_data: ComplianceUpdate,
    service: ComplianceService = Depends(get_compliance_service),
    caller: CallerContext = Depends(require_manager_or_admin),
    threshold_days: int = Depends(get_due_soon_threshold)
):
    """
    Обновление записи о допуске

    Изменение дат или периодичности суперадминистратором требует
    override_reason и override_justification.
    """
    try:
        compliance = service.update_compliance(
            caller, compliance_id, **compliance_data.model_dump(exclude_unset=True)
        )
        return build_compliance_response(compliance, utc_today(), threshold_days)
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при обновлении записи о допуске {compliance_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при обновлении записи о допуске"
        )


@router.delete("/{compliance_id}", response_model=MessageResponse)
async def delete_compliance(
    compliance_id: int,
    service: ComplianceService = Depends(get_compliance_service),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    try:
        service.delete_compliance(caller, compliance_id)
        return MessageResponse(message="Запись о допуске удалена")
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при удалении записи о допуске {compliance_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при удалении записи о допуске"
        )
