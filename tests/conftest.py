"""
Pytest fixtures для тестов Depot Compliance
"""
import pytest
import os
from datetime import date
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Отключаем rate limiting и планировщик для тестов (ДО импорта приложения)
os.environ["ENABLE_RATE_LIMIT"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

# Очищаем кэш settings и перезагружаем
from depot_compliance.config import get_settings
get_settings.cache_clear()

from depot_compliance.database import Base, get_db
from depot_compliance.models import (
    User,
    UserRole,
    Depot,
    DriverProfile,
    ComplianceType,
    DriverCompliance,
    RouteSection,
)
from depot_compliance.auth import get_password_hash, create_access_token
from depot_compliance.services.access_scope import CallerContext
from depot_compliance.services.cache_service import MemorySettingsCache

from depot_compliance.main import app


# Тестовая база данных в памяти
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

TEST_PASSWORD = "testpassword123"
# Хеш считается один раз: bcrypt медленный
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest.fixture(scope="function")
def test_engine():
    """Создание тестового engine для SQLite в памяти"""
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def test_db(session_factory) -> Generator[Session, None, None]:
    """Создание тестовой сессии БД"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def settings_cache() -> MemorySettingsCache:
    """Свежий кэш системных настроек на каждый тест"""
    return MemorySettingsCache()


@pytest.fixture(scope="function")
def client(test_db: Session, settings_cache) -> Generator[TestClient, None, None]:
    """Создание тестового клиента FastAPI"""

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.state.settings_cache = settings_cache

    client = TestClient(app, raise_server_exceptions=False)
    yield client

    app.dependency_overrides.clear()
    app.state.settings_cache = None


# ==================== Фабрики данных ====================

def make_depot(db: Session, code: str = "CBE", name: str = "Coimbatore Depot") -> Depot:
    depot = Depot(name=name, code=code, address="Coimbatore, Tamil Nadu", is_active=True)
    db.add(depot)
    db.commit()
    db.refresh(depot)
    return depot


def make_user(db: Session, email: str, role: UserRole, depot: Depot = None) -> User:
    user = User(
        email=email,
        hashed_password=TEST_PASSWORD_HASH,
        role=role.value,
        depot_id=depot.id if depot else None,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_driver(db: Session, depot: Depot, email: str = "durgadas.k@railway.com", pf_number: str = "15629802390",
                driver_name: str = "Durgadas K") -> DriverProfile:
    user = make_user(db, email, UserRole.DRIVER, depot)
    profile = DriverProfile(
        user_id=user.id,
        pf_number=pf_number,
        driver_name=driver_name,
        designation="TWD / PTJ (Tech-I / OHE / PTJ)",
        basic_pay=32900,
        date_of_appointment=date(2018, 2, 28),
        date_of_entry=date(2022, 1, 27),
        depot_id=depot.id,
        is_active=True,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def make_compliance(db: Session, profile: DriverProfile, compliance_type: ComplianceType,
                    done_date: date, due_date: date, frequency_months: int = 48) -> DriverCompliance:
    compliance = DriverCompliance(
        driver_profile_id=profile.id,
        compliance_type_id=compliance_type.id,
        done_date=done_date,
        due_date=due_date,
        frequency_months=frequency_months,
        is_active=True,
    )
    db.add(compliance)
    db.commit()
    db.refresh(compliance)
    return compliance


def auth_headers_for(user: User) -> dict:
    """Заголовок авторизации с access токеном пользователя"""
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def caller_for(user: User) -> CallerContext:
    return CallerContext(user_id=user.id, role=user.role, depot_id=user.depot_id, email=user.email)


# ==================== Фикстуры ====================

@pytest.fixture(scope="function")
def depot(test_db: Session) -> Depot:
    return make_depot(test_db)


@pytest.fixture(scope="function")
def other_depot(test_db: Session) -> Depot:
    return make_depot(test_db, code="ED", name="Erode Depot")


@pytest.fixture(scope="function")
def super_admin(test_db: Session) -> User:
    """Создание суперадминистратора"""
    return make_user(test_db, "admin@railway.com", UserRole.SUPER_ADMIN)


@pytest.fixture(scope="function")
def manager(test_db: Session, depot: Depot) -> User:
    """Создание менеджера депо CBE"""
    return make_user(test_db, "manager@railway.com", UserRole.DEPOT_MANAGER, depot)


@pytest.fixture(scope="function")
def other_manager(test_db: Session, other_depot: Depot) -> User:
    """Создание менеджера депо ED"""
    return make_user(test_db, "manager.ed@railway.com", UserRole.DEPOT_MANAGER, other_depot)


@pytest.fixture(scope="function")
def driver_profile(test_db: Session, depot: Depot) -> DriverProfile:
    """Профиль машиниста депо CBE"""
    return make_driver(test_db, depot)


@pytest.fixture(scope="function")
def other_driver_profile(test_db: Session, other_depot: Depot) -> DriverProfile:
    """Профиль машиниста депо ED"""
    return make_driver(test_db, other_depot, email="ravi.s@railway.com", pf_number="15629800001", driver_name="Ravi S")


@pytest.fixture(scope="function")
def compliance_type(test_db: Session) -> ComplianceType:
    compliance_type = ComplianceType(name="PME", description="Медицинское освидетельствование", default_frequency_months=48)
    test_db.add(compliance_type)
    test_db.commit()
    test_db.refresh(compliance_type)
    return compliance_type


@pytest.fixture(scope="function")
def predefined_section(test_db: Session) -> RouteSection:
    section = RouteSection(code="CBE-ED", name="Coimbatore to Erode", description="Main line section", is_predefined=True)
    test_db.add(section)
    test_db.commit()
    test_db.refresh(section)
    return section


@pytest.fixture(scope="function")
def admin_headers(super_admin: User) -> dict:
    return auth_headers_for(super_admin)


@pytest.fixture(scope="function")
def manager_headers(manager: User) -> dict:
    return auth_headers_for(manager)


@pytest.fixture(scope="function")
def other_manager_headers(other_manager: User) -> dict:
    return auth_headers_for(other_manager)


@pytest.fixture(scope="function")
def driver_headers(driver_profile: DriverProfile) -> dict:
    return auth_headers_for(driver_profile.user)
