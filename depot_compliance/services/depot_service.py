"""
Сервис для работы с депо
"""
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple

from depot_compliance.exceptions import NotFoundError, ConflictError
from depot_compliance.logger import logger
from depot_compliance.models import Depot, AuditAction
from depot_compliance.repositories.depot_repository import DepotRepository
from depot_compliance.services.access_scope import CallerContext, resolve_scope, ensure_depot_access
from depot_compliance.services.audit_service import AuditService, AuditContext, entity_snapshot


ENTITY_TYPE = "Depot"


class DepotService:
    """
    Сервис для работы с депо
    Содержит бизнес-логику поверх репозитория
    """

    def __init__(self, db: Session):
        self.db = db
        self.depot_repo = DepotRepository(db)
        self.audit = AuditService(db)

    def get_depots(self, caller: CallerContext, skip: int = 0, limit: int = 100) -> Tuple[List[Depot], int]:
        """
        Список депо: суперадминистратор - все, менеджер - свое, машинист - ничего

        Returns:
            tuple: (список депо, общее количество)
        """
        if caller.is_driver:
            return [], 0
        scope = resolve_scope(caller).filter
        return self.depot_repo.get_all(scope, skip=skip, limit=limit)

    def get_depot(self, caller: CallerContext, depot_id: int) -> Depot:
        """
        Получение депо по ID

        Raises:
            ForbiddenError: Депо вне области видимости вызывающего
            NotFoundError: Депо не найдено или удалено
        """
        ensure_depot_access(caller, depot_id, "Нет доступа к этому депо")
        depot = self.depot_repo.get_by_id(depot_id)
        if not depot:
            raise NotFoundError(f"Депо с ID {depot_id} не найдено")
        return depot

    def create_depot(self, caller: CallerContext, name: str, code: str, address: Optional[str] = None) -> Depot:
        """
        Создание депо

        Raises:
            ConflictError: Депо с таким кодом уже существует
        """
        if self.depot_repo.get_by_code(code):
            raise ConflictError(f"Депо с кодом '{code}' уже существует")

        depot = self.depot_repo.create(name=name, code=code, address=address)
        logger.info("Создано депо", extra={"depot_id": depot.id, "code": code, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, depot.id),
            ENTITY_TYPE, depot.id, AuditAction.CREATE,
            new_value=entity_snapshot(depot),
        )
        return depot

    def update_depot(
        self,
        caller: CallerContext,
        depot_id: int,
        name: Optional[str] = None,
        code: Optional[str] = None,
        address: Optional[str] = None
    ) -> Depot:
        """
        Обновление депо

        Raises:
            NotFoundError: Депо не найдено
            ConflictError: Новый код занят другим депо
        """
        depot = self.get_depot(caller, depot_id)

        if code is not None and code != depot.code:
            existing = self.depot_repo.get_by_code(code)
            if existing and existing.id != depot_id:
                raise ConflictError(f"Депо с кодом '{code}' уже существует")

        old_value = entity_snapshot(depot)
        depot = self.depot_repo.update(depot, name=name, code=code, address=address)
        logger.info("Обновлено депо", extra={"depot_id": depot.id, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, depot.id),
            ENTITY_TYPE, depot.id, AuditAction.UPDATE,
            old_value=old_value, new_value=entity_snapshot(depot),
        )
        return depot

    def delete_depot(self, caller: CallerContext, depot_id: int) -> Depot:
        """
        Мягкое удаление депо

        Raises:
            NotFoundError: Депо не найдено или уже удалено
        """
        depot = self.get_depot(caller, depot_id)
        old_value = entity_snapshot(depot)
        depot = self.depot_repo.soft_delete(depot)
        logger.info("Удалено депо", extra={"depot_id": depot.id, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, depot.id),
            ENTITY_TYPE, depot.id, AuditAction.DELETE,
            old_value=old_value,
        )
        return depot
