"""
Репозиторий для работы с депо
"""
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple
from depot_compliance.models import Depot
from depot_compliance.repositories.scoping import only_active, apply_depot_scope, mark_deleted
from depot_compliance.services.access_scope import ScopeFilter


class DepotRepository:
    """
    Репозиторий для работы с депо
    Инкапсулирует логику доступа к данным
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, depot_id: int) -> Optional[Depot]:
        """
        Получение активного депо по ID
        """
        return only_active(self.db.query(Depot), Depot).filter(Depot.id == depot_id).first()

    def get_by_code(self, code: str) -> Optional[Depot]:
        """
        Получение депо по коду (включая удаленные - код уникален в таблице)
        """
        return self.db.query(Depot).filter(Depot.code == code).first()

    def get_all(self, scope: ScopeFilter, skip: int = 0, limit: int = 100) -> Tuple[List[Depot], int]:
        """
        Получение списка активных депо в области видимости

        Returns:
            tuple: (список депо, общее количество)
        """
        query = only_active(self.db.query(Depot), Depot)
        query = apply_depot_scope(query, scope, Depot.id)

        total = query.count()
        depots = query.order_by(Depot.name.asc()).offset(skip).limit(limit).all()
        return depots, total

    def create(self, name: str, code: str, address: Optional[str] = None) -> Depot:
        """
        Создание депо
        """
        depot = Depot(name=name, code=code, address=address, is_active=True)
        self.db.add(depot)
        self.db.commit()
        self.db.refresh(depot)
        return depot

    def update(self, depot: Depot, **fields) -> Depot:
        """
        Обновление переданных полей депо
        """
        for key, value in fields.items():
            if value is not None:
                setattr(depot, key, value)
        self.db.commit()
        self.db.refresh(depot)
        return depot

    def soft_delete(self, depot: Depot) -> Depot:
        mark_deleted(depot)
        self.db.commit()
        self.db.refresh(depot)
        return depot
