"""
Сервис для работы с участками маршрутов и допусками машинистов к ним
"""
from datetime import date
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple

from depot_compliance.exceptions import NotFoundError, ConflictError, ForbiddenError, BusinessValidationError
from depot_compliance.logger import logger
from depot_compliance.models import RouteSection, DriverRouteAuth, DriverProfile, AuditAction
from depot_compliance.repositories.depot_repository import DepotRepository
from depot_compliance.repositories.driver_profile_repository import DriverProfileRepository
from depot_compliance.repositories.route_repository import RouteRepository
from depot_compliance.schemas import RouteAuthResponse
from depot_compliance.services.access_scope import (
    CallerContext,
    resolve_scope,
    ensure_depot_access,
    ensure_profile_access,
    audit_depot_id,
)
from depot_compliance.services.audit_service import AuditService, AuditContext, entity_snapshot
from depot_compliance.services.status_classifier import classify
from depot_compliance.utils.date_utils import add_months


SECTION_ENTITY_TYPE = "RouteSection"
AUTH_ENTITY_TYPE = "DriverRouteAuth"

EXPIRY_ORDER_MESSAGE = "Дата окончания допуска должна быть позже даты выдачи"
DUPLICATE_AUTH_MESSAGE = "У машиниста уже есть активный допуск к этому участку"


def validate_auth_dates(authorized_date: date, expiry_date: date) -> None:
    """
    Raises:
        BusinessValidationError: Дата окончания не позже даты выдачи
    """
    if expiry_date <= authorized_date:
        raise BusinessValidationError(EXPIRY_ORDER_MESSAGE)


def build_route_auth_response(auth: DriverRouteAuth, today: date, threshold_days: int) -> RouteAuthResponse:
    """
    Ответ API с вычисленным статусом допуска
    """
    response = RouteAuthResponse.model_validate(auth)
    response.status = classify(auth.expiry_date, today, threshold_days).value
    return response


class RouteService:
    """
    Сервис для работы с участками и допусками к участкам
    """

    def __init__(self, db: Session):
        self.db = db
        self.route_repo = RouteRepository(db)
        self.profile_repo = DriverProfileRepository(db)
        self.depot_repo = DepotRepository(db)
        self.audit = AuditService(db)

    # ==================== Участки ====================

    def get_sections(self, caller: CallerContext) -> Tuple[List[RouteSection], int]:
        """
        Участки: общие предопределенные и участки депо вызывающего
        """
        scope = resolve_scope(caller).filter
        return self.route_repo.get_sections(scope)

    def get_section(self, caller: CallerContext, section_id: int) -> RouteSection:
        """
        Получение участка по ID

        Raises:
            NotFoundError: Участок не найден
            ForbiddenError: Участок другого депо
        """
        resolve_scope(caller)
        section = self.route_repo.get_section(section_id)
        if not section:
            raise NotFoundError("Участок не найден")
        if section.depot_id is not None:
            ensure_depot_access(caller, section.depot_id, "Нет доступа к участку другого депо")
        return section

    def _get_mutable_section(self, caller: CallerContext, section_id: int, action: str) -> RouteSection:
        section = self.get_section(caller, section_id)
        if section.is_predefined:
            raise ForbiddenError(f"Предопределенный участок нельзя {action}")
        if section.depot_id is None and not caller.is_super_admin:
            raise ForbiddenError("Доступ запрещен")
        return section

    def create_section(
        self,
        caller: CallerContext,
        code: str,
        name: str,
        description: Optional[str] = None,
        depot_id: Optional[int] = None
    ) -> RouteSection:
        """
        Создание участка депо

        Участок менеджера всегда привязан к его депо. Создаваемые участки
        не бывают предопределенными.

        Raises:
            NotFoundError: Депо не найдено
            ConflictError: Участок с таким кодом уже есть
        """
        scope = resolve_scope(caller).filter
        if not caller.is_super_admin:
            depot_id = scope.depot_id

        if depot_id is not None and not self.depot_repo.get_by_id(depot_id):
            raise NotFoundError(f"Депо с ID {depot_id} не найдено")

        if self.route_repo.find_section_by_code(code, depot_id):
            raise ConflictError(f"Участок с кодом '{code}' уже существует")

        section = RouteSection(
            code=code,
            name=name,
            description=description,
            is_predefined=False,
            depot_id=depot_id,
            is_active=True,
        )
        section = self.route_repo.add_section(section)
        logger.info("Создан участок маршрута", extra={"section_id": section.id, "code": code, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, audit_depot_id(caller, depot_id)),
            SECTION_ENTITY_TYPE, section.id, AuditAction.CREATE,
            new_value=entity_snapshot(section),
        )
        return section

    def update_section(self, caller: CallerContext, section_id: int, **fields) -> RouteSection:
        """
        Обновление участка

        Raises:
            ForbiddenError: Участок предопределенный или другого депо
            ConflictError: Новый код занят
        """
        section = self._get_mutable_section(caller, section_id, "изменить")

        code = fields.get("code")
        if code is not None and code != section.code:
            existing = self.route_repo.find_section_by_code(code, section.depot_id)
            if existing and existing.id != section.id:
                raise ConflictError(f"Участок с кодом '{code}' уже существует")

        old_value = entity_snapshot(section)
        for key, value in fields.items():
            if value is not None:
                setattr(section, key, value)
        section = self.route_repo.save_section(section)
        logger.info("Обновлен участок маршрута", extra={"section_id": section.id, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, audit_depot_id(caller, section.depot_id)),
            SECTION_ENTITY_TYPE, section.id, AuditAction.UPDATE,
            old_value=old_value, new_value=entity_snapshot(section),
        )
        return section

    def delete_section(self, caller: CallerContext, section_id: int) -> RouteSection:
        """
        Мягкое удаление участка

        Raises:
            ForbiddenError: Участок предопределенный или другого депо
        """
        section = self._get_mutable_section(caller, section_id, "удалить")
        old_value = entity_snapshot(section)
        section = self.route_repo.soft_delete_section(section)
        logger.info("Удален участок маршрута", extra={"section_id": section.id, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, audit_depot_id(caller, section.depot_id)),
            SECTION_ENTITY_TYPE, section.id, AuditAction.DELETE,
            old_value=old_value,
        )
        return section

    # ==================== Допуски к участкам ====================

    def _get_profile_in_scope(self, caller: CallerContext, profile_id: int) -> DriverProfile:
        resolve_scope(caller)
        profile = self.profile_repo.get_by_id(profile_id)
        if not profile:
            raise NotFoundError("Профиль машиниста не найден")
        ensure_profile_access(caller, profile)
        return profile

    def get_auths(
        self,
        caller: CallerContext,
        driver_profile_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[DriverRouteAuth], int]:
        """
        Допуски к участкам в области видимости, по дате окончания
        """
        scope = resolve_scope(caller).filter
        return self.route_repo.get_auths(scope, driver_profile_id=driver_profile_id, skip=skip, limit=limit)

    def get_expiring(self, caller: CallerContext, today: date, window_months: int) -> List[DriverRouteAuth]:
        """
        Допуски, истекающие в [today, today + window_months]
        """
        scope = resolve_scope(caller).filter
        return self.route_repo.get_expiring(scope, today, add_months(today, window_months))

    def get_auth(self, caller: CallerContext, auth_id: int) -> DriverRouteAuth:
        """
        Получение допуска к участку

        Raises:
            NotFoundError: Допуск не найден или удален
            ForbiddenError: Допуск машиниста вне области видимости
        """
        resolve_scope(caller)
        auth = self.route_repo.get_auth(auth_id)
        if not auth:
            raise NotFoundError("Допуск к участку не найден")
        ensure_profile_access(caller, auth.driver_profile)
        return auth

    def create_auth(
        self,
        caller: CallerContext,
        driver_profile_id: int,
        route_section_id: int,
        authorized_date: date,
        expiry_date: date
    ) -> DriverRouteAuth:
        """
        Создание допуска машиниста к участку

        Raises:
            BusinessValidationError: Дата окончания не позже даты выдачи
            NotFoundError: Профиль или участок не найдены
            ConflictError: Активный допуск к участку уже есть
        """
        validate_auth_dates(authorized_date, expiry_date)
        profile = self._get_profile_in_scope(caller, driver_profile_id)
        self.get_section(caller, route_section_id)

        if self.route_repo.find_active_auth_pair(profile.id, route_section_id):
            raise ConflictError(DUPLICATE_AUTH_MESSAGE)

        auth = DriverRouteAuth(
            driver_profile_id=profile.id,
            route_section_id=route_section_id,
            authorized_date=authorized_date,
            expiry_date=expiry_date,
            is_active=True,
        )
        try:
            auth = self.route_repo.add_auth(auth)
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(DUPLICATE_AUTH_MESSAGE)

        logger.info(
            "Создан допуск к участку",
            extra={"auth_id": auth.id, "driver_profile_id": profile.id, "route_section_id": route_section_id}
        )
        self.audit.log(
            AuditContext.from_caller(caller, audit_depot_id(caller, profile.depot_id)),
            AUTH_ENTITY_TYPE, auth.id, AuditAction.CREATE,
            new_value=entity_snapshot(auth),
        )
        return auth

    def update_auth(
        self,
        caller: CallerContext,
        auth_id: int,
        authorized_date: Optional[date] = None,
        expiry_date: Optional[date] = None
    ) -> DriverRouteAuth:
        """
        Обновление дат допуска (порядок дат проверяется с учетом текущих значений)
        """
        auth = self.get_auth(caller, auth_id)
        new_authorized = authorized_date if authorized_date is not None else auth.authorized_date
        new_expiry = expiry_date if expiry_date is not None else auth.expiry_date
        validate_auth_dates(new_authorized, new_expiry)

        old_value = entity_snapshot(auth)
        auth.authorized_date = new_authorized
        auth.expiry_date = new_expiry
        auth = self.route_repo.save_auth(auth)
        logger.info("Обновлен допуск к участку", extra={"auth_id": auth.id, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, audit_depot_id(caller, auth.driver_profile.depot_id)),
            AUTH_ENTITY_TYPE, auth.id, AuditAction.UPDATE,
            old_value=old_value, new_value=entity_snapshot(auth),
        )
        return auth

    def delete_auth(self, caller: CallerContext, auth_id: int) -> DriverRouteAuth:
        """
        Мягкое удаление допуска к участку
        """
        auth = self.get_auth(caller, auth_id)
        depot_id = auth.driver_profile.depot_id
        old_value = entity_snapshot(auth)
        auth = self.route_repo.soft_delete_auth(auth)
        logger.info("Удален допуск к участку", extra={"auth_id": auth.id, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, audit_depot_id(caller, depot_id)),
            AUTH_ENTITY_TYPE, auth.id, AuditAction.DELETE,
            old_value=old_value,
        )
        return auth
