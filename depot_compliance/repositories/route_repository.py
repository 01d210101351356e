"""
Репозиторий для работы с участками маршрутов и допусками к ним
"""
from datetime import date
from sqlalchemy import or_, and_
from sqlalchemy.orm import Session, joinedload, contains_eager
from typing import Optional, List, Tuple
from depot_compliance.models import RouteSection, DriverRouteAuth, DriverProfile
from depot_compliance.repositories.scoping import only_active, apply_profile_scope, mark_deleted
from depot_compliance.services.access_scope import ScopeFilter


class RouteRepository:
    """
    Репозиторий для работы с участками и допусками к участкам
    """

    def __init__(self, db: Session):
        self.db = db

    # ==================== RouteSection ====================

    def get_section(self, section_id: int) -> Optional[RouteSection]:
        """
        Получение активного участка по ID
        """
        return only_active(self.db.query(RouteSection), RouteSection).filter(RouteSection.id == section_id).first()

    def find_section_by_code(self, code: str, depot_id: Optional[int]) -> Optional[RouteSection]:
        """
        Активный участок с тем же кодом в той же области (общий или депо)
        """
        query = only_active(self.db.query(RouteSection), RouteSection).filter(RouteSection.code == code)
        if depot_id is None:
            query = query.filter(RouteSection.depot_id.is_(None))
        else:
            query = query.filter(RouteSection.depot_id == depot_id)
        return query.first()

    def get_sections(self, scope: ScopeFilter) -> Tuple[List[RouteSection], int]:
        """
        Список участков: общие предопределенные плюс участки депо вызывающего

        Returns:
            tuple: (список участков, общее количество)
        """
        query = only_active(self.db.query(RouteSection), RouteSection)

        if not scope.unrestricted:
            shared = and_(RouteSection.is_predefined.is_(True), RouteSection.depot_id.is_(None))
            if scope.depot_id is not None:
                query = query.filter(or_(shared, RouteSection.depot_id == scope.depot_id))
            else:
                query = query.filter(shared)

        total = query.count()
        sections = query.order_by(RouteSection.code.asc()).all()
        return sections, total

    def add_section(self, section: RouteSection) -> RouteSection:
        self.db.add(section)
        self.db.commit()
        self.db.refresh(section)
        return section

    def save_section(self, section: RouteSection) -> RouteSection:
        self.db.commit()
        self.db.refresh(section)
        return section

    def soft_delete_section(self, section: RouteSection) -> RouteSection:
        mark_deleted(section)
        self.db.commit()
        self.db.refresh(section)
        return section

    # ==================== DriverRouteAuth ====================

    def _auth_query(self):
        return (
            self.db.query(DriverRouteAuth)
            .join(DriverRouteAuth.driver_profile)
            .options(
                contains_eager(DriverRouteAuth.driver_profile),
                joinedload(DriverRouteAuth.route_section),
            )
        )

    def get_auth(self, auth_id: int) -> Optional[DriverRouteAuth]:
        """
        Получение активного допуска к участку по ID
        """
        return only_active(self._auth_query(), DriverRouteAuth).filter(DriverRouteAuth.id == auth_id).first()

    def get_auths(
        self,
        scope: ScopeFilter,
        driver_profile_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[DriverRouteAuth], int]:
        """
        Список допусков к участкам в области видимости, по дате окончания
        """
        query = only_active(self._auth_query(), DriverRouteAuth)
        query = apply_profile_scope(query, scope)

        if driver_profile_id is not None:
            query = query.filter(DriverRouteAuth.driver_profile_id == driver_profile_id)

        total = query.count()
        items = query.order_by(DriverRouteAuth.expiry_date.asc(), DriverRouteAuth.id.asc()).offset(skip).limit(limit).all()
        return items, total

    def get_auths_for_profile(self, driver_profile_id: int) -> List[DriverRouteAuth]:
        query = only_active(self._auth_query(), DriverRouteAuth)
        return (
            query.filter(DriverRouteAuth.driver_profile_id == driver_profile_id)
            .order_by(DriverRouteAuth.expiry_date.asc())
            .all()
        )

    def get_expiring(self, scope: ScopeFilter, start: date, end: date) -> List[DriverRouteAuth]:
        """
        Допуски активных машинистов, истекающие в [start, end]
        """
        query = only_active(self._auth_query(), DriverRouteAuth)
        query = only_active(query, DriverProfile)
        query = apply_profile_scope(query, scope)
        return (
            query.filter(DriverRouteAuth.expiry_date >= start, DriverRouteAuth.expiry_date <= end)
            .order_by(DriverRouteAuth.expiry_date.asc())
            .all()
        )

    def find_active_auth_pair(self, driver_profile_id: int, route_section_id: int) -> Optional[DriverRouteAuth]:
        return only_active(self.db.query(DriverRouteAuth), DriverRouteAuth).filter(
            DriverRouteAuth.driver_profile_id == driver_profile_id,
            DriverRouteAuth.route_section_id == route_section_id,
        ).first()

    def add_auth(self, auth: DriverRouteAuth) -> DriverRouteAuth:
        self.db.add(auth)
        self.db.commit()
        self.db.refresh(auth)
        return auth

    def save_auth(self, auth: DriverRouteAuth) -> DriverRouteAuth:
        self.db.commit()
        self.db.refresh(auth)
        return auth

    def soft_delete_auth(self, auth: DriverRouteAuth) -> DriverRouteAuth:
        mark_deleted(auth)
        self.db.commit()
        self.db.refresh(auth)
        return auth
