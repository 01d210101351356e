"""
Сервис для работы с профилями машинистов

Профиль создается вместе с учетной записью роли DRIVER. Ранее удаленные
учетная запись или профиль с тем же email / табельным номером
восстанавливаются вместо создания новых.
"""
from datetime import date
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple

from depot_compliance.auth import get_password_hash
from depot_compliance.exceptions import NotFoundError, ConflictError
from depot_compliance.logger import logger
from depot_compliance.models import DriverProfile, DriverCompliance, DriverRouteAuth, User, UserRole, AuditAction
from depot_compliance.repositories.compliance_repository import ComplianceRepository
from depot_compliance.repositories.depot_repository import DepotRepository
from depot_compliance.repositories.driver_profile_repository import DriverProfileRepository
from depot_compliance.repositories.route_repository import RouteRepository
from depot_compliance.repositories.user_repository import UserRepository
from depot_compliance.services.access_scope import (
    CallerContext,
    resolve_scope,
    ensure_depot_access,
    ensure_profile_access,
)
from depot_compliance.services.audit_service import AuditService, AuditContext, entity_snapshot
from depot_compliance.services.user_service import CreateNew, ReactivateUser, is_live, restore


ENTITY_TYPE = "DriverProfile"
PROFILE_USER_IN_USE_MESSAGE = "Учетная запись удаленного профиля с этим табельным номером уже используется"


class ReactivateProfile:
    """Есть удаленный профиль - восстанавливается вместе с его учетной записью"""

    def __init__(self, profile: DriverProfile):
        self.profile = profile

    def __repr__(self) -> str:
        return f"ReactivateProfile(profile_id={self.profile.id})"


class DriverProfileService:
    """
    Сервис для работы с профилями машинистов
    """

    def __init__(self, db: Session):
        self.db = db
        self.profile_repo = DriverProfileRepository(db)
        self.user_repo = UserRepository(db)
        self.depot_repo = DepotRepository(db)
        self.compliance_repo = ComplianceRepository(db)
        self.route_repo = RouteRepository(db)
        self.audit = AuditService(db)

    def resolve_creation(self, email: str, pf_number: str):
        """
        Решение о создании профиля по email и табельному номеру

        Returns:
            CreateNew, ReactivateUser или ReactivateProfile

        Raises:
            ConflictError: Активный профиль с табельным номером или активный
                пользователь с email уже существует, либо учетная запись
                удаленного профиля снова используется
        """
        profile = self.profile_repo.get_by_pf_number(pf_number)
        user = self.user_repo.get_by_email(email)

        if profile is not None and is_live(profile):
            raise ConflictError("Профиль машиниста с таким табельным номером уже существует")
        if user is not None and is_live(user):
            raise ConflictError("Пользователь с таким email уже существует")

        if profile is not None:
            # Email принадлежит другой удаленной учетной записи
            if user is not None and user.id != profile.user_id:
                raise ConflictError("Email принадлежит другой удаленной учетной записи")
            # Учетная запись профиля восстановлена отдельно и используется
            if profile.user is not None and is_live(profile.user):
                raise ConflictError(PROFILE_USER_IN_USE_MESSAGE)
            return ReactivateProfile(profile)

        if user is not None:
            old_profile = self.profile_repo.get_by_user_id(user.id, include_deleted=True)
            if old_profile is not None:
                return ReactivateProfile(old_profile)
            return ReactivateUser(user)

        return CreateNew()

    def create_profile(
        self,
        caller: CallerContext,
        email: str,
        password: str,
        pf_number: str,
        driver_name: str,
        designation: str,
        basic_pay: int,
        date_of_appointment: date,
        date_of_entry: date,
        depot_id: int
    ) -> DriverProfile:
        """
        Создание профиля машиниста вместе с учетной записью

        Raises:
            ForbiddenError: Менеджер создает машиниста в чужом депо
            NotFoundError: Депо не найдено
            ConflictError: Табельный номер или email заняты
        """
        ensure_depot_access(caller, depot_id, "Нельзя создать машиниста в другом депо")
        if not self.depot_repo.get_by_id(depot_id):
            raise NotFoundError(f"Депо с ID {depot_id} не найдено")

        decision = self.resolve_creation(email, pf_number)
        hashed_password = get_password_hash(password)
        profile_fields = dict(
            pf_number=pf_number,
            driver_name=driver_name,
            designation=designation,
            basic_pay=basic_pay,
            date_of_appointment=date_of_appointment,
            date_of_entry=date_of_entry,
            depot_id=depot_id,
        )

        if isinstance(decision, ReactivateProfile):
            profile = decision.profile
            user = profile.user
            restore(user)
            user.email = email
            user.hashed_password = hashed_password
            user.role = UserRole.DRIVER.value
            user.depot_id = depot_id
            restore(profile)
            for key, value in profile_fields.items():
                setattr(profile, key, value)
            action = AuditAction.UPDATE
        else:
            if isinstance(decision, ReactivateUser):
                user = decision.user
                restore(user)
                user.hashed_password = hashed_password
                user.role = UserRole.DRIVER.value
                user.depot_id = depot_id
            else:
                user = User(
                    email=email,
                    hashed_password=hashed_password,
                    role=UserRole.DRIVER.value,
                    depot_id=depot_id,
                    is_active=True,
                )
                self.user_repo.add(user)

            profile = DriverProfile(user_id=user.id, is_active=True, **profile_fields)
            self.profile_repo.add(profile)
            action = AuditAction.CREATE

        profile = self.profile_repo.save(profile)
        logger.info(
            "Создан профиль машиниста",
            extra={
                "profile_id": profile.id,
                "pf_number": pf_number,
                "decision": repr(decision),
                "created_by": caller.user_id,
            }
        )

        self.audit.log(
            AuditContext.from_caller(caller, depot_id),
            ENTITY_TYPE, profile.id, action,
            new_value=entity_snapshot(profile),
        )
        return profile

    def get_profiles(self, caller: CallerContext, skip: int = 0, limit: int = 100) -> Tuple[List[DriverProfile], int]:
        """
        Список профилей в области видимости, по ФИО
        """
        scope = resolve_scope(caller).filter
        return self.profile_repo.get_all(scope, skip=skip, limit=limit)

    def get_profile(self, caller: CallerContext, profile_id: int) -> DriverProfile:
        """
        Получение профиля по ID

        Raises:
            NotFoundError: Профиль не найден или удален
            ForbiddenError: Профиль вне области видимости
        """
        resolve_scope(caller)
        profile = self.profile_repo.get_by_id(profile_id)
        if not profile:
            raise NotFoundError("Профиль машиниста не найден")
        ensure_profile_access(caller, profile)
        return profile

    def update_profile(self, caller: CallerContext, profile_id: int, **fields) -> DriverProfile:
        """
        Обновление данных профиля (ФИО, должность, оклад, даты)
        """
        profile = self.get_profile(caller, profile_id)
        old_value = entity_snapshot(profile)

        for key, value in fields.items():
            if value is not None:
                setattr(profile, key, value)
        profile = self.profile_repo.save(profile)
        logger.info("Обновлен профиль машиниста", extra={"profile_id": profile.id, "updated_by": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, profile.depot_id),
            ENTITY_TYPE, profile.id, AuditAction.UPDATE,
            old_value=old_value, new_value=entity_snapshot(profile),
        )
        return profile

    def delete_profile(self, caller: CallerContext, profile_id: int) -> DriverProfile:
        """
        Мягкое удаление профиля вместе с учетной записью

        Raises:
            NotFoundError: Профиль не найден или уже удален
        """
        profile = self.get_profile(caller, profile_id)
        old_value = entity_snapshot(profile)
        profile = self.profile_repo.soft_delete(profile)
        logger.info("Удален профиль машиниста", extra={"profile_id": profile.id, "deleted_by": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, profile.depot_id),
            ENTITY_TYPE, profile.id, AuditAction.DELETE,
            old_value=old_value,
        )
        return profile

    def get_profile_compliances(self, caller: CallerContext, profile_id: int) -> List[DriverCompliance]:
        """
        Активные допуски машиниста, по сроку
        """
        profile = self.get_profile(caller, profile_id)
        return self.compliance_repo.get_for_profile(profile.id)

    def get_profile_route_auths(self, caller: CallerContext, profile_id: int) -> List[DriverRouteAuth]:
        """
        Активные допуски машиниста к участкам, по дате окончания
        """
        profile = self.get_profile(caller, profile_id)
        return self.route_repo.get_auths_for_profile(profile.id)
