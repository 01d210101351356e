"""
Главный модуль FastAPI приложения
"""
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from depot_compliance.config import get_settings
from depot_compliance.database import SessionLocal, engine, Base
from depot_compliance.exceptions import DomainError
from depot_compliance.logger import logger
from depot_compliance.middleware import LoggingMiddleware
from depot_compliance.middleware.rate_limit import setup_rate_limiting
from depot_compliance.middleware.prometheus_metrics import setup_prometheus
from depot_compliance.routers import (
    auth,
    users,
    depots,
    driver_profiles,
    compliance,
    routes,
    assets,
    maintenance,
    notifications,
    audit,
    system_settings,
    health,
)
from depot_compliance.services.cache_service import build_settings_cache
from depot_compliance.services.scheduler_service import NotificationScheduler
from depot_compliance.services.system_settings_service import SystemSettingsService
from depot_compliance.services.user_service import create_super_admin_if_not_exists

settings = get_settings()


def apply_migrations():
    """
    Применение миграций Alembic при старте

    Для отключения установите AUTO_MIGRATE=false. Если alembic.ini не найден
    или миграции не применились, таблицы создаются через create_all.
    """
    if os.getenv("AUTO_MIGRATE", "true").lower() != "true":
        logger.info("Автоматическое применение миграций отключено (AUTO_MIGRATE=false)")
        return

    try:
        from alembic.config import Config
        from alembic import command

        alembic_ini_path = os.path.join(os.path.dirname(__file__), "..", "alembic.ini")
        if not os.path.exists(alembic_ini_path):
            raise FileNotFoundError(f"alembic.ini not found at {alembic_ini_path}")
        command.upgrade(Config(alembic_ini_path), "head")
        logger.info("Миграции БД успешно применены", extra={"auto_migrate": True})
    except Exception as e:
        logger.warning(f"Не удалось применить миграции при старте: {e}", extra={"error": str(e)})
        logger.info("Попытка создать таблицы через create_all (fallback)")
        Base.metadata.create_all(bind=engine)


def bootstrap_initial_data(db, cache, super_admin_email, super_admin_password) -> None:
    """
    Системные настройки по умолчанию и учетная запись суперадминистратора
    """
    SystemSettingsService(db, cache).initialize_defaults()
    create_super_admin_if_not_exists(db, super_admin_email, super_admin_password)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Управление жизненным циклом приложения (startup и shutdown)
    """
    logger.info("Запуск приложения: инициализация начальных данных", extra={
        "event_type": "system",
        "event_category": "startup"
    })
    apply_migrations()

    cache = build_settings_cache(settings)
    app.state.settings_cache = cache

    db = SessionLocal()
    try:
        bootstrap_initial_data(db, cache, settings.super_admin_email, settings.super_admin_password)
    except Exception as e:
        db.rollback()
        logger.error(f"Ошибка при инициализации: {e}", extra={"error": str(e)}, exc_info=True)
    finally:
        db.close()

    scheduler = None
    if settings.scheduler_enabled:
        try:
            scheduler = NotificationScheduler(SessionLocal, cache, settings)
            scheduler.start()
            app.state.notification_scheduler = scheduler
        except Exception as e:
            logger.error(f"Ошибка при инициализации планировщика: {e}", extra={
                "error": str(e),
                "error_type": type(e).__name__,
                "event_type": "scheduler",
                "event_category": "startup"
            }, exc_info=True)
    else:
        logger.info("Планировщик уведомлений отключен (SCHEDULER_ENABLED=false)")

    logger.info("Инициализация завершена")

    yield  # Приложение работает

    if scheduler is not None:
        try:
            scheduler.shutdown()
        except Exception as e:
            logger.error(f"Ошибка при остановке планировщика: {e}", extra={"error": str(e)}, exc_info=True)


app = FastAPI(
    title="Depot Compliance API",
    description="""
## Учет допусков машинистов депо

API для учета допусков машинистов (медкомиссии, экзамены, допуски к участкам),
технического обслуживания оборудования и уведомлений о сроках.

### Аутентификация
Получите токен через `/api/v1/auth/login` и передавайте его в заголовке:
```
Authorization: Bearer <token>
```

### Мониторинг
* `/metrics` - Prometheus метрики
* `/health` - Health check
* `/docs` - Swagger UI
    """,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """
    Доменные исключения сервисов -> HTTP ответ с их статусом
    """
    logger.warning(
        f"Доменная ошибка: {exc.message}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "status_code": exc.status_code
        }
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Обработчик ошибок валидации Pydantic для детального логирования
    """
    error_details = [
        {"loc": error["loc"], "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    logger.error("Ошибка валидации запроса", extra={
        "path": request.url.path,
        "method": request.method,
        "errors": error_details
    })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": error_details}
    )


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    """
    Нарушение ограничения целостности БД -> 409
    """
    logger.warning(
        "Нарушение целостности данных",
        extra={"path": request.url.path, "method": request.method, "error_message": str(exc.orig)}
    )
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Запись нарушает ограничение уникальности"}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Глобальный обработчик необработанных исключений
    """
    logger.error(
        f"Необработанное исключение: {type(exc).__name__}: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        },
        exc_info=True
    )

    # Не раскрываем внутренние детали БД или системных ошибок
    if settings.debug:
        client_message = f"{type(exc).__name__}: {exc}"
    elif isinstance(exc, SQLAlchemyError):
        client_message = "Ошибка базы данных. Обратитесь к администратору."
    else:
        client_message = "Внутренняя ошибка сервера. Обратитесь к администратору."

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": client_message}
    )


# Добавляем middleware для логирования запросов
app.add_middleware(LoggingMiddleware)

# Настройка Rate Limiting
setup_rate_limiting(app)

# Настройка Prometheus метрик
setup_prometheus(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Подключаем роутеры
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(depots.router)
app.include_router(driver_profiles.router)
app.include_router(compliance.router)
app.include_router(routes.router)
app.include_router(assets.router)
app.include_router(maintenance.router)
app.include_router(notifications.router)
app.include_router(audit.router)
app.include_router(system_settings.router)
app.include_router(health.router)


@app.get("/")
async def root():
    """
    Корневой endpoint
    """
    return {"message": "Depot Compliance API", "version": settings.api_version}
