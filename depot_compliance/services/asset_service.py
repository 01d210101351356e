"""
Сервис для работы с оборудованием депо
"""
from datetime import date
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple

from depot_compliance.exceptions import NotFoundError
from depot_compliance.logger import logger
from depot_compliance.models import Asset, AssetType, AuditAction
from depot_compliance.repositories.asset_repository import AssetRepository
from depot_compliance.repositories.depot_repository import DepotRepository
from depot_compliance.services.access_scope import CallerContext, resolve_scope, ensure_depot_access
from depot_compliance.services.audit_service import AuditService, AuditContext, entity_snapshot


ENTITY_TYPE = "Asset"


class AssetService:
    """
    Сервис для работы с оборудованием депо
    """

    def __init__(self, db: Session):
        self.db = db
        self.asset_repo = AssetRepository(db)
        self.depot_repo = DepotRepository(db)
        self.audit = AuditService(db)

    def get_assets(self, caller: CallerContext, skip: int = 0, limit: int = 100) -> Tuple[List[Asset], int]:
        scope = resolve_scope(caller).filter
        return self.asset_repo.get_all(scope, skip=skip, limit=limit)

    def get_asset(self, caller: CallerContext, asset_id: int) -> Asset:
        """
        Получение оборудования по ID

        Raises:
            NotFoundError: Оборудование не найдено
            ForbiddenError: Оборудование другого депо
        """
        resolve_scope(caller)
        asset = self.asset_repo.get_by_id(asset_id)
        if not asset:
            raise NotFoundError("Оборудование не найдено")
        ensure_depot_access(caller, asset.depot_id, "Нет доступа к оборудованию другого депо")
        return asset

    def create_asset(
        self,
        caller: CallerContext,
        asset_number: str,
        asset_type: AssetType,
        depot_id: int,
        current_hours: Optional[int] = None,
        last_service_date: Optional[date] = None
    ) -> Asset:
        """
        Создание оборудования

        Raises:
            ForbiddenError: Менеджер создает оборудование в чужом депо
            NotFoundError: Депо не найдено
        """
        ensure_depot_access(caller, depot_id, "Нельзя создать оборудование в другом депо")
        if not self.depot_repo.get_by_id(depot_id):
            raise NotFoundError(f"Депо с ID {depot_id} не найдено")

        asset = Asset(
            asset_number=asset_number,
            asset_type=AssetType(asset_type).value,
            depot_id=depot_id,
            current_hours=current_hours,
            last_service_date=last_service_date,
            is_active=True,
        )
        asset = self.asset_repo.add(asset)
        logger.info("Создано оборудование", extra={"asset_id": asset.id, "depot_id": depot_id, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, depot_id),
            ENTITY_TYPE, asset.id, AuditAction.CREATE,
            new_value=entity_snapshot(asset),
        )
        return asset

    def update_asset(self, caller: CallerContext, asset_id: int, **fields) -> Asset:
        """
        Обновление номера, наработки или даты обслуживания
        """
        asset = self.get_asset(caller, asset_id)
        old_value = entity_snapshot(asset)

        for key, value in fields.items():
            if value is not None:
                setattr(asset, key, value)
        asset = self.asset_repo.save(asset)
        logger.info("Обновлено оборудование", extra={"asset_id": asset.id, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, asset.depot_id),
            ENTITY_TYPE, asset.id, AuditAction.UPDATE,
            old_value=old_value, new_value=entity_snapshot(asset),
        )
        return asset

    def delete_asset(self, caller: CallerContext, asset_id: int) -> Asset:
        asset = self.get_asset(caller, asset_id)
        old_value = entity_snapshot(asset)
        asset = self.asset_repo.soft_delete(asset)
        logger.info("Удалено оборудование", extra={"asset_id": asset.id, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, asset.depot_id),
            ENTITY_TYPE, asset.id, AuditAction.DELETE,
            old_value=old_value,
        )
        return asset
