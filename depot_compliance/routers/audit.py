"""
Роутер для просмотра журнала аудита
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from depot_compliance.auth import require_manager_or_admin
from depot_compliance.database import get_db
from depot_compliance.models import AuditAction
from depot_compliance.schemas import AuditLogListResponse, AuditLogResponse
from depot_compliance.services.access_scope import CallerContext
from depot_compliance.services.audit_service import AuditService
from depot_compliance.utils.date_utils import parse_date_range

router = APIRouter(prefix="/api/v1/audit", tags=["Аудит"])


@router.get("", response_model=AuditLogListResponse)
async def get_audit_logs(
    entity_type: Optional[str] = Query(None, description="Тип сущности (Depot, User, DriverCompliance...)"),
    entity_id: Optional[str] = Query(None, description="ID сущности"),
    depot_id: Optional[int] = Query(None, description="Фильтр по депо"),
    user_id: Optional[int] = Query(None, description="Фильтр по пользователю"),
    action: Optional[AuditAction] = Query(None, description="Действие"),
    date_from: Optional[str] = Query(None, description="Начальная дата (YYYY-MM-DD)"),
    date_to: Optional[str] = Query(None, description="Конечная дата (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    """
    Журнал аудита (новые записи первыми, не более 1000)

    Менеджер депо видит только записи своего депо.
    """
    start_date, end_date = parse_date_range(date_from, date_to)
    logs, total = AuditService(db).get_audit_logs(
        caller,
        entity_type=entity_type,
        entity_id=entity_id,
        depot_id=depot_id,
        user_id=user_id,
        action=action.value if action else None,
        start_date=start_date,
        end_date=end_date,
    )
    return AuditLogListResponse(total=total, items=[AuditLogResponse.model_validate(log) for log in logs])
