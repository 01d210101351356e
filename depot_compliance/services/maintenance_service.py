"""
Сервис для работы с графиками технического обслуживания

Учет ведется по датам (next_due_date) и/или по наработке (next_due_hours).
"""
from datetime import date
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple

from depot_compliance.exceptions import NotFoundError
from depot_compliance.logger import logger
from depot_compliance.models import MaintenanceSchedule, MaintenanceType, AuditAction
from depot_compliance.repositories.asset_repository import AssetRepository, MaintenanceRepository
from depot_compliance.schemas import MaintenanceScheduleResponse
from depot_compliance.services.access_scope import CallerContext, resolve_scope, ensure_depot_access
from depot_compliance.services.audit_service import AuditService, AuditContext, entity_snapshot
from depot_compliance.services.status_classifier import classify
from depot_compliance.utils.date_utils import add_days


ENTITY_TYPE = "MaintenanceSchedule"


def calculate_next_due_date_by_days(last_date: date, frequency_days: int) -> date:
    return add_days(last_date, frequency_days)


def calculate_next_due_hours(completed_hours: int, frequency_hours: int) -> int:
    return completed_hours + frequency_hours


def is_due_by_hours(current_hours: Optional[int], next_due_hours: Optional[int]) -> bool:
    """
    Наработка достигла порога следующего ТО
    """
    if current_hours is None or next_due_hours is None:
        return False
    return current_hours >= next_due_hours


def build_maintenance_response(
    schedule: MaintenanceSchedule,
    today: date,
    threshold_days: int
) -> MaintenanceScheduleResponse:
    """
    Ответ API со статусом по дате и признаком достижения наработки
    """
    response = MaintenanceScheduleResponse.model_validate(schedule)
    if schedule.next_due_date is not None:
        response.status = classify(schedule.next_due_date, today, threshold_days).value
    current_hours = schedule.asset.current_hours if schedule.asset else None
    response.due_by_hours = is_due_by_hours(current_hours, schedule.next_due_hours)
    return response


class MaintenanceService:
    """
    Сервис для работы с графиками ТО
    """

    def __init__(self, db: Session):
        self.db = db
        self.maintenance_repo = MaintenanceRepository(db)
        self.asset_repo = AssetRepository(db)
        self.audit = AuditService(db)

    def get_types(self) -> List[MaintenanceType]:
        return self.maintenance_repo.get_types()

    def get_schedules(
        self,
        caller: CallerContext,
        asset_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[MaintenanceSchedule], int]:
        """
        Графики ТО в области видимости, по дате следующего ТО
        """
        scope = resolve_scope(caller).filter
        return self.maintenance_repo.get_all(scope, asset_id=asset_id, skip=skip, limit=limit)

    def get_schedule(self, caller: CallerContext, schedule_id: int) -> MaintenanceSchedule:
        """
        Raises:
            NotFoundError: График не найден
            ForbiddenError: Оборудование другого депо
        """
        resolve_scope(caller)
        schedule = self.maintenance_repo.get_by_id(schedule_id)
        if not schedule:
            raise NotFoundError("График ТО не найден")
        ensure_depot_access(caller, schedule.asset.depot_id, "Нет доступа к оборудованию другого депо")
        return schedule

    def create_schedule(
        self,
        caller: CallerContext,
        asset_id: int,
        maintenance_type_id: int,
        last_completed_date: Optional[date] = None,
        next_due_date: Optional[date] = None,
        last_completed_hours: Optional[int] = None,
        next_due_hours: Optional[int] = None,
        notes: Optional[str] = None
    ) -> MaintenanceSchedule:
        """
        Создание графика ТО

        Если следующий срок не передан, он рассчитывается по периодичности
        вида ТО от последнего выполнения.

        Raises:
            NotFoundError: Оборудование вне области видимости или вид ТО не найден
        """
        scope = resolve_scope(caller).filter
        asset = self.asset_repo.get_by_id(asset_id, scope=scope)
        if not asset:
            raise NotFoundError("Оборудование не найдено")

        maintenance_type = self.maintenance_repo.get_type(maintenance_type_id)
        if not maintenance_type:
            raise NotFoundError("Вид ТО не найден")

        if next_due_date is None and last_completed_date is not None and maintenance_type.frequency_days:
            next_due_date = calculate_next_due_date_by_days(last_completed_date, maintenance_type.frequency_days)
        if next_due_hours is None and last_completed_hours is not None and maintenance_type.frequency_hours:
            next_due_hours = calculate_next_due_hours(last_completed_hours, maintenance_type.frequency_hours)

        schedule = MaintenanceSchedule(
            asset_id=asset.id,
            maintenance_type_id=maintenance_type.id,
            last_completed_date=last_completed_date,
            next_due_date=next_due_date,
            last_completed_hours=last_completed_hours,
            next_due_hours=next_due_hours,
            notes=notes,
            is_active=True,
        )
        schedule = self.maintenance_repo.add(schedule)
        logger.info("Создан график ТО", extra={"schedule_id": schedule.id, "asset_id": asset.id, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, asset.depot_id),
            ENTITY_TYPE, schedule.id, AuditAction.CREATE,
            new_value=entity_snapshot(schedule),
        )
        return schedule

    def update_schedule(self, caller: CallerContext, schedule_id: int, **fields) -> MaintenanceSchedule:
        schedule = self.get_schedule(caller, schedule_id)
        old_value = entity_snapshot(schedule)

        for key, value in fields.items():
            if value is not None:
                setattr(schedule, key, value)
        schedule = self.maintenance_repo.save(schedule)
        logger.info("Обновлен график ТО", extra={"schedule_id": schedule.id, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, schedule.asset.depot_id),
            ENTITY_TYPE, schedule.id, AuditAction.UPDATE,
            old_value=old_value, new_value=entity_snapshot(schedule),
        )
        return schedule

    def delete_schedule(self, caller: CallerContext, schedule_id: int) -> MaintenanceSchedule:
        schedule = self.get_schedule(caller, schedule_id)
        depot_id = schedule.asset.depot_id
        old_value = entity_snapshot(schedule)
        schedule = self.maintenance_repo.soft_delete(schedule)
        logger.info("Удален график ТО", extra={"schedule_id": schedule.id, "user_id": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, depot_id),
            ENTITY_TYPE, schedule.id, AuditAction.DELETE,
            old_value=old_value,
        )
        return schedule
