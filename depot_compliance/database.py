"""
Модуль для работы с базой данных
"""
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from depot_compliance.config import get_settings
from depot_compliance.logger import logger

settings = get_settings()

# URL подключения к БД из конфигурации
# Приоритет: переменная окружения DATABASE_URL > значение из .env > значение по умолчанию
env_database_url = os.getenv("DATABASE_URL")
if env_database_url:
    DATABASE_URL = env_database_url
    logger.info("Используется DATABASE_URL из переменной окружения")
else:
    DATABASE_URL = settings.database_url
    logger.info("Используется DATABASE_URL из настроек (config.py или .env)")

if not DATABASE_URL or not DATABASE_URL.strip():
    raise ValueError("DATABASE_URL не может быть пустым")

# Логируем используемый URL без учетных данных
safe_url = DATABASE_URL.split("@")[-1] if "@" in DATABASE_URL else DATABASE_URL
logger.info(f"Подключение к БД: ***@{safe_url}")

# Параметры пула соединений имеют смысл только для серверных СУБД
engine_kwargs = {"echo": False}
if DATABASE_URL.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs.update(
        pool_pre_ping=True,  # Проверяет соединение перед использованием
        pool_recycle=3600,   # Переиспользует соединения каждый час
    )
    if DATABASE_URL.startswith("postgresql"):
        engine_kwargs["connect_args"] = {
            "options": "-c search_path=public -c client_encoding=UTF8"
        }

engine = create_engine(DATABASE_URL, **engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Получение сессии БД для dependency injection
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
