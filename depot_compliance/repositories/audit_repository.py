"""
Репозиторий журнала аудита
"""
from datetime import datetime
from sqlalchemy.orm import Session, joinedload
from typing import Optional, List, Tuple
from depot_compliance.models import AuditLog


class AuditRepository:
    """
    Репозиторий журнала аудита (только добавление и чтение)
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, **kwargs) -> AuditLog:
        entry = AuditLog(**kwargs)
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def get_all(
        self,
        depot_id: Optional[int] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        user_id: Optional[int] = None,
        action: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 1000
    ) -> Tuple[List[AuditLog], int]:
        """
        Записи журнала по фильтрам, новые первыми

        Returns:
            tuple: (записи, общее количество подходящих записей)
        """
        query = self.db.query(AuditLog).options(joinedload(AuditLog.depot))

        if depot_id is not None:
            query = query.filter(AuditLog.depot_id == depot_id)
        if entity_type:
            query = query.filter(AuditLog.entity_type == entity_type)
        if entity_id:
            query = query.filter(AuditLog.entity_id == entity_id)
        if user_id is not None:
            query = query.filter(AuditLog.user_id == user_id)
        if action:
            query = query.filter(AuditLog.action == action)
        if start_date:
            query = query.filter(AuditLog.created_at >= start_date)
        if end_date:
            query = query.filter(AuditLog.created_at <= end_date)

        total = query.count()
        entries = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
        return entries, total
