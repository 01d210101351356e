"""
Сервис журнала аудита

Запись в журнал выполняется по принципу best-effort: ошибка записи
логируется и не прерывает основную операцию.
"""
import json
from datetime import datetime, date
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from depot_compliance.logger import logger
from depot_compliance.models import AuditLog, AuditAction
from depot_compliance.repositories.audit_repository import AuditRepository
from depot_compliance.services.access_scope import CallerContext

AUDIT_LOG_LIMIT = 1000

# Поля, которые никогда не попадают в журнал
_EXCLUDED_FIELDS = {"hashed_password"}


class AuditContext:
    """
    Кто и откуда выполнил изменение
    """

    def __init__(
        self,
        user_id: Optional[int],
        depot_id: Optional[int],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ):
        self.user_id = user_id
        self.depot_id = depot_id
        self.ip_address = ip_address
        self.user_agent = user_agent

    @classmethod
    def from_caller(cls, caller: CallerContext, depot_id: Optional[int] = None) -> "AuditContext":
        """
        Контекст аудита из контекста вызывающего

        Args:
            depot_id: Депо записи аудита (по умолчанию - депо вызывающего)
        """
        return cls(
            user_id=caller.user_id,
            depot_id=depot_id if depot_id is not None else caller.depot_id,
            ip_address=caller.ip_address,
            user_agent=caller.user_agent,
        )


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def entity_snapshot(entity) -> Dict[str, Any]:
    """
    Снимок значений колонок ORM-объекта для журнала аудита
    """
    mapper = sa_inspect(entity).mapper
    return {
        column.key: getattr(entity, column.key)
        for column in mapper.column_attrs
        if column.key not in _EXCLUDED_FIELDS
    }


def _dump(value: Optional[Dict[str, Any]]) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, default=_json_default)


class AuditService:
    """
    Сервис записи и чтения журнала аудита
    """

    def __init__(self, db: Session):
        self.db = db
        self.audit_repo = AuditRepository(db)

    def log(
        self,
        context: AuditContext,
        entity_type: str,
        entity_id,
        action: AuditAction,
        old_value: Optional[Dict[str, Any]] = None,
        new_value: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """
        Запись изменения в журнал аудита

        Никогда не выбрасывает исключение: при ошибке транзакция журнала
        откатывается, ошибка логируется.

        Returns:
            Созданная запись или None при ошибке
        """
        try:
            return self.audit_repo.create(
                user_id=context.user_id,
                depot_id=context.depot_id,
                entity_type=entity_type,
                entity_id=str(entity_id),
                action=AuditAction(action).value,
                old_value=_dump(old_value),
                new_value=_dump(new_value),
                ip_address=context.ip_address,
                user_agent=context.user_agent[:500] if context.user_agent else None,
            )
        except Exception as e:
            self.db.rollback()
            logger.error(
                "Не удалось записать событие аудита",
                extra={
                    "entity_type": entity_type,
                    "entity_id": str(entity_id),
                    "action": str(action),
                    "error": str(e),
                },
                exc_info=True
            )
            return None

    def get_audit_logs(
        self,
        caller: CallerContext,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        depot_id: Optional[int] = None,
        user_id: Optional[int] = None,
        action: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[AuditLog], int]:
        """
        Чтение журнала аудита в области видимости вызывающего

        Суперадминистратор видит все записи, остальные - только своего депо.
        Пользователь без депо получает пустой результат.

        Returns:
            tuple: (записи, не более 1000; общее количество)
        """
        if not caller.is_super_admin:
            if caller.depot_id is None:
                return [], 0
            # Фильтр по другому депо не расширяет область видимости
            if depot_id is not None and depot_id != caller.depot_id:
                return [], 0
            depot_id = caller.depot_id

        return self.audit_repo.get_all(
            depot_id=depot_id,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            action=action,
            start_date=start_date,
            end_date=end_date,
            limit=AUDIT_LOG_LIMIT,
        )
