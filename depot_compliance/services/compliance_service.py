"""
Сервис для работы с допусками машинистов

Срок (due_date) рассчитывается клиентом и сохраняется как передан.
Изменение дат или периодичности существующей записи считается
переопределением и требует причины и обоснования, которые попадают
в журнал аудита, а не в саму запись.
"""
from datetime import date, datetime
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple

from depot_compliance.exceptions import NotFoundError, ConflictError, BusinessValidationError
from depot_compliance.logger import logger
from depot_compliance.models import DriverCompliance, ComplianceType, DriverProfile, AuditAction
from depot_compliance.repositories.compliance_repository import ComplianceRepository
from depot_compliance.repositories.driver_profile_repository import DriverProfileRepository
from depot_compliance.schemas import ComplianceResponse
from depot_compliance.services.access_scope import (
    CallerContext,
    resolve_scope,
    ensure_profile_access,
    audit_depot_id,
)
from depot_compliance.services.audit_service import AuditService, AuditContext, entity_snapshot
from depot_compliance.services.status_classifier import classify


ENTITY_TYPE = "DriverCompliance"

OVERRIDE_FIELDS = ("done_date", "due_date", "frequency_months")
OVERRIDE_REQUIRED_MESSAGE = "Изменение сроков требует указания причины и обоснования"
DUPLICATE_MESSAGE = "Для машиниста уже есть активная запись этого типа допуска"


def _as_date(value):
    if isinstance(value, datetime):
        return value.date()
    return value


def is_override(
    compliance: DriverCompliance,
    done_date: Optional[date] = None,
    due_date: Optional[date] = None,
    frequency_months: Optional[int] = None
) -> bool:
    """
    Изменяет ли запрос даты или периодичность записи

    Поля, не переданные в запросе, изменением не считаются.
    """
    if done_date is not None and _as_date(done_date) != _as_date(compliance.done_date):
        return True
    if due_date is not None and _as_date(due_date) != _as_date(compliance.due_date):
        return True
    if frequency_months is not None and int(frequency_months) != int(compliance.frequency_months):
        return True
    return False


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def build_compliance_response(compliance: DriverCompliance, today: date, threshold_days: int) -> ComplianceResponse:
    """
    Ответ API с вычисленным статусом срока
    """
    response = ComplianceResponse.model_validate(compliance)
    response.status = classify(compliance.due_date, today, threshold_days).value
    return response


class ComplianceService:
    """
    Сервис для работы с допусками машинистов
    """

    def __init__(self, db: Session, require_manager_justification: bool = False):
        """
        Args:
            require_manager_justification: Требовать обоснование переопределения
                и от менеджера депо
        """
        self.db = db
        self.require_manager_justification = require_manager_justification
        self.compliance_repo = ComplianceRepository(db)
        self.profile_repo = DriverProfileRepository(db)
        self.audit = AuditService(db)

    def get_types(self) -> List[ComplianceType]:
        return self.compliance_repo.get_types()

    def _get_profile_in_scope(self, caller: CallerContext, profile_id: int) -> DriverProfile:
        resolve_scope(caller)
        profile = self.profile_repo.get_by_id(profile_id)
        if not profile:
            raise NotFoundError("Профиль машиниста не найден")
        ensure_profile_access(caller, profile)
        return profile

    def get_compliances(
        self,
        caller: CallerContext,
        driver_profile_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[DriverCompliance], int]:
        """
        Список допусков в области видимости, по сроку
        """
        scope = resolve_scope(caller).filter
        return self.compliance_repo.get_all(scope, driver_profile_id=driver_profile_id, skip=skip, limit=limit)

    def get_compliance(self, caller: CallerContext, compliance_id: int) -> DriverCompliance:
        """
        Получение записи о допуске

        Raises:
            NotFoundError: Запись не найдена или удалена
            ForbiddenError: Запись машиниста вне области видимости
        """
        resolve_scope(caller)
        compliance = self.compliance_repo.get_by_id(compliance_id)
        if not compliance:
            raise NotFoundError("Запись о допуске не найдена")
        ensure_profile_access(caller, compliance.driver_profile)
        return compliance

    def create_compliance(
        self,
        caller: CallerContext,
        driver_profile_id: int,
        compliance_type_id: int,
        done_date: date,
        due_date: date,
        frequency_months: int,
        notes: Optional[str] = None
    ) -> DriverCompliance:
        """
        Создание записи о допуске

        Raises:
            NotFoundError: Профиль или тип допуска не найдены
            ForbiddenError: Профиль вне области видимости
            BusinessValidationError: Срок раньше даты прохождения
            ConflictError: Активная запись для пары машинист + тип уже есть
        """
        profile = self._get_profile_in_scope(caller, driver_profile_id)

        if not self.compliance_repo.get_type(compliance_type_id):
            raise NotFoundError("Тип допуска не найден")

        if due_date < done_date:
            raise BusinessValidationError("Срок не может быть раньше даты прохождения")

        if self.compliance_repo.find_active_pair(profile.id, compliance_type_id):
            raise ConflictError(DUPLICATE_MESSAGE)

        compliance = DriverCompliance(
            driver_profile_id=profile.id,
            compliance_type_id=compliance_type_id,
            done_date=done_date,
            due_date=due_date,
            frequency_months=frequency_months,
            notes=notes,
            is_active=True,
        )
        try:
            compliance = self.compliance_repo.add(compliance)
        except IntegrityError:
            # Параллельное создание той же пары: сработал уникальный индекс
            self.db.rollback()
            raise ConflictError(DUPLICATE_MESSAGE)

        logger.info(
            "Создана запись о допуске",
            extra={
                "compliance_id": compliance.id,
                "driver_profile_id": profile.id,
                "compliance_type_id": compliance_type_id,
                "user_id": caller.user_id,
            }
        )
        self.audit.log(
            AuditContext.from_caller(caller, audit_depot_id(caller, profile.depot_id)),
            ENTITY_TYPE, compliance.id, AuditAction.CREATE,
            new_value=entity_snapshot(compliance),
        )
        return compliance

    def _override_requires_justification(self, caller: CallerContext) -> bool:
        if caller.is_super_admin:
            return True
        return caller.is_depot_manager and self.require_manager_justification

    def update_compliance(
        self,
        caller: CallerContext,
        compliance_id: int,
        done_date: Optional[date] = None,
        due_date: Optional[date] = None,
        frequency_months: Optional[int] = None,
        notes: Optional[str] = None,
        override_reason: Optional[str] = None,
        override_justification: Optional[str] = None
    ) -> DriverCompliance:
        """
        Обновление записи о допуске

        Изменение дат или периодичности суперадминистратором без причины
        и обоснования отклоняется до записи в БД.

        Raises:
            NotFoundError: Запись не найдена
            BusinessValidationError: Нет обоснования переопределения или
                срок раньше даты прохождения
        """
        compliance = self.get_compliance(caller, compliance_id)
        override = is_override(compliance, done_date, due_date, frequency_months)

        if override and self._override_requires_justification(caller):
            if _is_blank(override_reason) or _is_blank(override_justification):
                raise BusinessValidationError(OVERRIDE_REQUIRED_MESSAGE)

        new_done_date = done_date if done_date is not None else compliance.done_date
        new_due_date = due_date if due_date is not None else compliance.due_date
        if _as_date(new_due_date) < _as_date(new_done_date):
            raise BusinessValidationError("Срок не может быть раньше даты прохождения")

        old_value = entity_snapshot(compliance)
        if override:
            old_value["override_reason"] = override_reason
            old_value["override_justification"] = override_justification

        compliance.done_date = new_done_date
        compliance.due_date = new_due_date
        if frequency_months is not None:
            compliance.frequency_months = frequency_months
        if notes is not None:
            compliance.notes = notes
        compliance = self.compliance_repo.save(compliance)

        logger.info(
            "Обновлена запись о допуске",
            extra={"compliance_id": compliance.id, "override": override, "user_id": caller.user_id}
        )
        self.audit.log(
            AuditContext.from_caller(caller, audit_depot_id(caller, compliance.driver_profile.depot_id)),
            ENTITY_TYPE, compliance.id, AuditAction.UPDATE,
            old_value=old_value, new_value=entity_snapshot(compliance),
        )
        return compliance

    def delete_compliance(self, caller: CallerContext, compliance_id: int) -> DriverCompliance:
        """
        Мягкое удаление записи о допуске

        Raises:
            NotFoundError: Запись не найдена или уже удалена
        """
        compliance = self.get_compliance(caller, compliance_id)
        depot_id = compliance.driver_profile.depot_id
        old_value = entity_snapshot(compliance)
        compliance = self.compliance_repo.soft_delete(compliance)
        logger.info("Удалена запись о допуске", extra={"compliance_id": compliance.id, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, audit_depot_id(caller, depot_id)),
            ENTITY_TYPE, compliance.id, AuditAction.DELETE,
            old_value=old_value,
        )
        return compliance
