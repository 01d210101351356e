"""
Репозиторий для работы с профилями машинистов
"""
from sqlalchemy.orm import Session, joinedload
from typing import Optional, List, Tuple
from depot_compliance.models import DriverProfile
from depot_compliance.repositories.scoping import only_active, apply_profile_scope, mark_deleted
from depot_compliance.services.access_scope import ScopeFilter


class DriverProfileRepository:
    """
    Репозиторий для работы с профилями машинистов
    """

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self):
        return self.db.query(DriverProfile).options(
            joinedload(DriverProfile.user),
            joinedload(DriverProfile.depot),
        )

    def get_by_id(self, profile_id: int) -> Optional[DriverProfile]:
        """
        Получение активного профиля по ID
        """
        return only_active(self._base_query(), DriverProfile).filter(DriverProfile.id == profile_id).first()

    def get_by_pf_number(self, pf_number: str) -> Optional[DriverProfile]:
        """
        Получение профиля по табельному номеру, включая удаленные
        """
        return self.db.query(DriverProfile).filter(DriverProfile.pf_number == pf_number).first()

    def get_by_user_id(self, user_id: int, include_deleted: bool = False) -> Optional[DriverProfile]:
        query = self.db.query(DriverProfile).filter(DriverProfile.user_id == user_id)
        if not include_deleted:
            query = only_active(query, DriverProfile)
        return query.first()

    def get_all(self, scope: ScopeFilter, skip: int = 0, limit: int = 100) -> Tuple[List[DriverProfile], int]:
        """
        Получение списка активных профилей в области видимости, по ФИО

        Returns:
            tuple: (список профилей, общее количество)
        """
        query = only_active(self._base_query(), DriverProfile)
        query = apply_profile_scope(query, scope)

        total = query.count()
        profiles = query.order_by(DriverProfile.driver_name.asc()).offset(skip).limit(limit).all()
        return profiles, total

    def add(self, profile: DriverProfile) -> DriverProfile:
        self.db.add(profile)
        self.db.flush()
        return profile

    def save(self, profile: DriverProfile) -> DriverProfile:
        self.db.commit()
        self.db.refresh(profile)
        return profile

    def soft_delete(self, profile: DriverProfile) -> DriverProfile:
        """
        Мягкое удаление профиля вместе с учетной записью машиниста
        """
        mark_deleted(profile)
        if profile.user is not None:
            mark_deleted(profile.user)
        self.db.commit()
        self.db.refresh(profile)
        return profile
