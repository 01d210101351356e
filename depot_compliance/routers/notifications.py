"""
Роутер для уведомлений пользователя и ручного запуска проверки сроков
"""
from typing import Optional, List, Dict, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from depot_compliance.auth import get_current_user, require_super_admin
from depot_compliance.config import get_settings
from depot_compliance.database import get_db
from depot_compliance.logger import logger
from depot_compliance.models import User
from depot_compliance.routers.deps import get_settings_cache
from depot_compliance.schemas import (
    NotificationResponse,
    NotificationListResponse,
    NotificationUpdateResult,
    NotificationRunResult,
)
from depot_compliance.services.access_scope import CallerContext
from depot_compliance.services.cache_service import SettingsCache
from depot_compliance.services.email_service import EmailService
from depot_compliance.services.notification_service import NotificationService
from depot_compliance.services.scheduler_service import ComplianceCheckRunner
from depot_compliance.services.system_settings_service import SystemSettingsService
from depot_compliance.utils.date_utils import utc_today

router = APIRouter(prefix="/api/v1/notifications", tags=["Уведомления"])


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    is_read: Optional[bool] = Query(None, description="Фильтр по статусу прочтения"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Последние уведомления текущего пользователя
    """
    service = NotificationService(db)
    notifications, total, unread_count = service.get_user_notifications(current_user.id, is_read=is_read)
    return NotificationListResponse(
        total=total,
        unread_count=unread_count,
        items=[NotificationResponse.model_validate(n) for n in notifications]
    )


@router.get("/unread-count")
async def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {"unread_count": NotificationService(db).get_unread_count(current_user.id)}


@router.patch("/read-all", response_model=NotificationUpdateResult)
async def mark_all_as_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Отметить все уведомления текущего пользователя прочитанными
    """
    return NotificationUpdateResult(updated=NotificationService(db).mark_all_as_read(current_user.id))


@router.patch("/{notification_id}/read", response_model=NotificationUpdateResult)
async def mark_as_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Отметить уведомление прочитанным

    Чужое или несуществующее уведомление не изменяется (updated = 0).
    """
    updated = NotificationService(db).mark_as_read(notification_id, current_user.id)
    return NotificationUpdateResult(updated=updated)


@router.post("/run-checks", response_model=NotificationRunResult)
async def run_compliance_checks(
    db: Session = Depends(get_db),
    cache: SettingsCache = Depends(get_settings_cache),
    caller: CallerContext = Depends(require_super_admin)
):
    """
    Ручной запуск проверки сроков допусков (только суперадминистратор)
    """
    settings = get_settings()
    try:
        runner = ComplianceCheckRunner(
            db,
            SystemSettingsService(db, cache),
            NotificationService(db, EmailService(settings), mode=settings.notification_mode),
        )
        result = runner.run_all(utc_today())
        logger.info("Ручной запуск проверки сроков", extra={"user_id": caller.user_id, **result})
        return NotificationRunResult(**result)
    except Exception as e:
        logger.error(f"Ошибка при ручном запуске проверки сроков: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при запуске проверки сроков"
        )


@router.get("/scheduler/jobs", response_model=List[Dict[str, Any]])
async def get_scheduler_jobs(
    request: Request,
    caller: CallerContext = Depends(require_super_admin)
):
    """
    Задачи планировщика уведомлений
    """
    scheduler = getattr(request.app.state, "notification_scheduler", None)
    if scheduler is None:
        return []
    return scheduler.get_scheduled_jobs()
