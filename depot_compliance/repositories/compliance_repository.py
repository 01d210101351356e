"""
Репозиторий для работы с допусками машинистов
"""
from datetime import date
from sqlalchemy.orm import Session, joinedload, contains_eager
from typing import Optional, List, Tuple
from depot_compliance.models import DriverCompliance, ComplianceType, DriverProfile
from depot_compliance.repositories.scoping import only_active, apply_profile_scope, mark_deleted
from depot_compliance.services.access_scope import ScopeFilter


class ComplianceRepository:
    """
    Репозиторий для работы с допусками и типами допусков
    """

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self):
        """
        Запрос допусков с join профиля машиниста (для фильтрации по депо)
        """
        return (
            self.db.query(DriverCompliance)
            .join(DriverCompliance.driver_profile)
            .options(
                contains_eager(DriverCompliance.driver_profile),
                joinedload(DriverCompliance.compliance_type),
            )
        )

    # ==================== ComplianceType ====================

    def get_type(self, type_id: int) -> Optional[ComplianceType]:
        """
        Получение активного типа допуска
        """
        return only_active(self.db.query(ComplianceType), ComplianceType).filter(ComplianceType.id == type_id).first()

    def get_types(self) -> List[ComplianceType]:
        """
        Активные типы допусков по названию
        """
        return only_active(self.db.query(ComplianceType), ComplianceType).order_by(ComplianceType.name.asc()).all()

    def get_type_by_name(self, name: str) -> Optional[ComplianceType]:
        return self.db.query(ComplianceType).filter(ComplianceType.name == name).first()

    # ==================== DriverCompliance ====================

    def get_by_id(self, compliance_id: int) -> Optional[DriverCompliance]:
        """
        Получение активной записи о допуске по ID
        """
        return only_active(self._base_query(), DriverCompliance).filter(DriverCompliance.id == compliance_id).first()

    def get_all(
        self,
        scope: ScopeFilter,
        driver_profile_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[DriverCompliance], int]:
        """
        Получение списка допусков в области видимости, по сроку

        Returns:
            tuple: (список допусков, общее количество)
        """
        query = only_active(self._base_query(), DriverCompliance)
        query = apply_profile_scope(query, scope)

        if driver_profile_id is not None:
            query = query.filter(DriverCompliance.driver_profile_id == driver_profile_id)

        total = query.count()
        items = query.order_by(DriverCompliance.due_date.asc(), DriverCompliance.id.asc()).offset(skip).limit(limit).all()
        return items, total

    def get_for_profile(self, driver_profile_id: int) -> List[DriverCompliance]:
        """
        Активные допуски профиля по сроку
        """
        query = only_active(self._base_query(), DriverCompliance)
        return (
            query.filter(DriverCompliance.driver_profile_id == driver_profile_id)
            .order_by(DriverCompliance.due_date.asc())
            .all()
        )

    def find_active_pair(self, driver_profile_id: int, compliance_type_id: int) -> Optional[DriverCompliance]:
        """
        Активная запись для пары машинист + тип допуска
        """
        return only_active(self.db.query(DriverCompliance), DriverCompliance).filter(
            DriverCompliance.driver_profile_id == driver_profile_id,
            DriverCompliance.compliance_type_id == compliance_type_id,
        ).first()

    def get_due_between(self, start: date, end: date) -> List[DriverCompliance]:
        """
        Активные допуски активных машинистов со сроком в [start, end]
        """
        query = only_active(self._base_query(), DriverCompliance)
        query = only_active(query, DriverProfile)
        return (
            query.filter(DriverCompliance.due_date >= start, DriverCompliance.due_date <= end)
            .order_by(DriverCompliance.due_date.asc())
            .all()
        )

    def get_overdue(self, before: date) -> List[DriverCompliance]:
        """
        Активные допуски активных машинистов со сроком раньше before
        """
        query = only_active(self._base_query(), DriverCompliance)
        query = only_active(query, DriverProfile)
        return (
            query.filter(DriverCompliance.due_date < before)
            .order_by(DriverCompliance.due_date.asc())
            .all()
        )

    def add(self, compliance: DriverCompliance) -> DriverCompliance:
        self.db.add(compliance)
        self.db.commit()
        self.db.refresh(compliance)
        return compliance

    def save(self, compliance: DriverCompliance) -> DriverCompliance:
        self.db.commit()
        self.db.refresh(compliance)
        return compliance

    def soft_delete(self, compliance: DriverCompliance) -> DriverCompliance:
        mark_deleted(compliance)
        self.db.commit()
        self.db.refresh(compliance)
        return compliance
