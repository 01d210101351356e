"""
Health check endpoints для мониторинга состояния сервисов
"""
from datetime import datetime, timezone
from typing import Dict, Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from depot_compliance.config import get_settings
from depot_compliance.database import get_db
from depot_compliance.logger import logger

router = APIRouter(prefix="/health", tags=["Health"])


def check_database(db: Session) -> Dict[str, Any]:
    """Проверка подключения к БД"""
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}


def get_scheduler_info(request: Request) -> Dict[str, Any]:
    scheduler = getattr(request.app.state, "notification_scheduler", None)
    if scheduler is None:
        return {"status": "disabled"}
    return {
        "status": "running" if scheduler.running else "stopped",
        "jobs_count": len(scheduler.get_scheduled_jobs())
    }


@router.get("/live")
async def liveness():
    """
    Liveness probe - приложение запущено
    """
    return {"status": "alive", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("")
async def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Проверка здоровья API: БД и планировщик уведомлений

    Returns:
        200 если БД доступна, иначе 503
    """
    settings = get_settings()
    db_check = check_database(db)
    healthy = db_check["status"] == "healthy"

    response = {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.api_version,
        "environment": settings.environment,
        "database": db_check,
        "scheduler": get_scheduler_info(request),
    }
    status_code = status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=status_code, content=response)
