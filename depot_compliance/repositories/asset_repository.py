"""
Репозиторий для работы с оборудованием и графиками ТО
"""
from sqlalchemy.orm import Session, joinedload, contains_eager
from typing import Optional, List, Tuple
from depot_compliance.models import Asset, MaintenanceType, MaintenanceSchedule
from depot_compliance.repositories.scoping import only_active, apply_depot_scope, mark_deleted
from depot_compliance.services.access_scope import ScopeFilter


class AssetRepository:
    """
    Репозиторий для работы с оборудованием депо
    """

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self):
        return self.db.query(Asset).options(joinedload(Asset.depot))

    def get_by_id(self, asset_id: int, scope: Optional[ScopeFilter] = None) -> Optional[Asset]:
        """
        Получение активного оборудования по ID (в области видимости, если передана)
        """
        query = only_active(self._base_query(), Asset).filter(Asset.id == asset_id)
        if scope is not None:
            query = apply_depot_scope(query, scope, Asset.depot_id)
        return query.first()

    def get_all(self, scope: ScopeFilter, skip: int = 0, limit: int = 100) -> Tuple[List[Asset], int]:
        """
        Список оборудования в области видимости, по инвентарному номеру
        """
        query = only_active(self._base_query(), Asset)
        query = apply_depot_scope(query, scope, Asset.depot_id)

        total = query.count()
        assets = query.order_by(Asset.asset_number.asc()).offset(skip).limit(limit).all()
        return assets, total

    def add(self, asset: Asset) -> Asset:
        self.db.add(asset)
        self.db.commit()
        self.db.refresh(asset)
        return asset

    def save(self, asset: Asset) -> Asset:
        self.db.commit()
        self.db.refresh(asset)
        return asset

    def soft_delete(self, asset: Asset) -> Asset:
        mark_deleted(asset)
        self.db.commit()
        self.db.refresh(asset)
        return asset


class MaintenanceRepository:
    """
    Репозиторий для работы с графиками и видами ТО
    """

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self):
        """
        Графики ТО с join оборудования (для фильтрации по депо)
        """
        return (
            self.db.query(MaintenanceSchedule)
            .join(MaintenanceSchedule.asset)
            .options(
                contains_eager(MaintenanceSchedule.asset).joinedload(Asset.depot),
                joinedload(MaintenanceSchedule.maintenance_type),
            )
        )

    def get_type(self, type_id: int) -> Optional[MaintenanceType]:
        return only_active(self.db.query(MaintenanceType), MaintenanceType).filter(MaintenanceType.id == type_id).first()

    def get_types(self) -> List[MaintenanceType]:
        """
        Активные виды ТО по названию
        """
        return only_active(self.db.query(MaintenanceType), MaintenanceType).order_by(MaintenanceType.name.asc()).all()

    def get_by_id(self, schedule_id: int) -> Optional[MaintenanceSchedule]:
        return only_active(self._base_query(), MaintenanceSchedule).filter(MaintenanceSchedule.id == schedule_id).first()

    def get_all(
        self,
        scope: ScopeFilter,
        asset_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[MaintenanceSchedule], int]:
        """
        Графики ТО активного оборудования в области видимости, по дате следующего ТО
        """
        query = only_active(self._base_query(), MaintenanceSchedule)
        query = only_active(query, Asset)
        query = apply_depot_scope(query, scope, Asset.depot_id)

        if asset_id is not None:
            query = query.filter(MaintenanceSchedule.asset_id == asset_id)

        total = query.count()
        items = (
            query.order_by(MaintenanceSchedule.next_due_date.asc(), MaintenanceSchedule.id.asc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total

    def add(self, schedule: MaintenanceSchedule) -> MaintenanceSchedule:
        self.db.add(schedule)
        self.db.commit()
        self.db.refresh(schedule)
        return schedule

    def save(self, schedule: MaintenanceSchedule) -> MaintenanceSchedule:
        self.db.commit()
        self.db.refresh(schedule)
        return schedule

    def soft_delete(self, schedule: MaintenanceSchedule) -> MaintenanceSchedule:
        mark_deleted(schedule)
        self.db.commit()
        self.db.refresh(schedule)
        return schedule
