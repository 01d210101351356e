"""
Роутер для работы с депо
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from depot_compliance.auth import get_caller_context, require_super_admin
from depot_compliance.database import get_db
from depot_compliance.exceptions import DomainError
from depot_compliance.logger import logger
from depot_compliance.schemas import DepotCreate, DepotUpdate, DepotResponse, DepotListResponse, MessageResponse
from depot_compliance.services.access_scope import CallerContext
from depot_compliance.services.depot_service import DepotService

router = APIRouter(prefix="/api/v1/depots", tags=["Депо"])


@router.get("", response_model=DepotListResponse)
async def get_depots(
    skip: int = Query(0, ge=0, description="Количество пропущенных записей"),
    limit: int = Query(100, ge=1, le=1000, description="Максимальное количество записей"),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context)
):
    """
    Получение списка депо
    """
    service = DepotService(db)
    depots, total = service.get_depots(caller, skip=skip, limit=limit)
    return DepotListResponse(total=total, items=[DepotResponse.model_validate(depot) for depot in depots])


@router.get("/{depot_id}", response_model=DepotResponse)
async def get_depot(
    depot_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context)
):
    """
    Получение депо по ID
    """
    return DepotService(db).get_depot(caller, depot_id)


@router.post("", response_model=DepotResponse, status_code=status.HTTP_201_CREATED)
async def create_depot(
    depot_data: DepotCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_super_admin)
):
    """
    Создание депо (только суперадминистратор)
    """
    try:
        service = DepotService(db)
        return service.create_depot(caller, name=depot_data.name, code=depot_data.code, address=depot_data.address)
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при создании депо: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при создании депо"
        )


@router.patch("/{depot_id}", response_model=DepotResponse)
async def update_depot(
    depot_id: int,
    depot_data: DepotUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_super_admin)
):
    """
    Обновление депо (только суперадминистратор)
    """
    try:
        service = DepotService(db)
        return service.update_depot(caller, depot_id, **depot_data.model_dump(exclude_unset=True))
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при обновлении депо {depot_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при обновлении депо"
        )


@router.delete("/{depot_id}", response_model=MessageResponse)
async def delete_depot(
    depot_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_super_admin)
):
    """
    Мягкое удаление депо (только суперадминистратор)
    """
    try:
        DepotService(db).delete_depot(caller, depot_id)
        return MessageResponse(message="Депо удалено")
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при удалении депо {depot_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при удалении депо"
        )
