"""
Alembic environment для миграций БД
"""
from logging.config import fileConfig
from alembic import context
import sys
import os

# Добавляем путь к приложению
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

# Импортируем конфигурацию и модели (регистрация таблиц в Base.metadata)
from depot_compliance.database import Base, engine, DATABASE_URL
from depot_compliance import models  # noqa: F401

# Конфигурация Alembic
config = context.config

# URL БД берется из конфигурации приложения
# Приоритет: переменная окружения DATABASE_URL > значение из настроек
config.set_main_option('sqlalchemy.url', DATABASE_URL)

# Настройка логирования
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# Метаданные для автогенерации миграций
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """
    Запуск миграций в offline режиме
    """
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Запуск миграций на engine приложения

    Для SQLite включается batch-режим: ALTER TABLE там ограничен.
    """
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.dialect.name == "sqlite"
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
