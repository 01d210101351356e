"""
Роутер для работы с оборудованием депо
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from depot_compliance.auth import get_caller_context, require_manager_or_admin
from depot_compliance.database import get_db
from depot_compliance.exceptions import DomainError
from depot_compliance.logger import logger
from depot_compliance.schemas import AssetCreate, AssetUpdate, AssetResponse, AssetListResponse, MessageResponse
from depot_compliance.services.access_scope import CallerContext
from depot_compliance.services.asset_service import AssetService

router = APIRouter(prefix="/api/v1/assets", tags=["Оборудование"])


@router.get("", response_model=AssetListResponse)
async def get_assets(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context)
):
    """
    Оборудование в области видимости
    """
    assets, total = AssetService(db).get_assets(caller, skip=skip, limit=limit)
    return AssetListResponse(total=total, items=[AssetResponse.model_validate(asset) for asset in assets])


@router.get("/{asset_id}", response_model=AssetResponse)
async def get_asset(
    asset_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context)
):
    return AssetService(db).get_asset(caller, asset_id)


@router.post("", response_model=AssetResponse, status_code=status.HTTP_201_CREATED)
async def create_asset(
    asset_data: AssetCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    try:
        return AssetService(db).create_asset(caller, **asset_data.model_dump())
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при создании оборудования: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при создании оборудования"
        )


@router.patch("/{asset_id}", response_model=AssetResponse)
async def update_asset(
    asset_id: int,
    asset_data: AssetUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    try:
        return AssetService(db).update_asset(caller, asset_id, **asset_data.model_dump(exclude_unset=True))
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при обновлении оборудования {asset_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при обновлении оборудования"
        )


@router.delete("/{asset_id}", response_model=MessageResponse)
async def delete_asset(
    asset_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    try:
        AssetService(db).delete_asset(caller, asset_id)
        return MessageResponse(message="Оборудование удалено")
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при удалении оборудования {asset_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при удалении оборудования"
        )
