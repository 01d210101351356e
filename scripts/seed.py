"""
Скрипт заполнения БД демонстрационными данными

Создает депо, машиниста с профилем, типы допусков (PME, GRS, TR_4, OC),
записи о допусках, предопределенные участки и допуски к ним.
Повторный запуск не создает дублей.

Запуск: python -m scripts.seed
"""
import os
import sys
from datetime import date
from pathlib import Path

# Добавляем путь к приложению
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.orm import Session

from depot_compliance.auth import get_password_hash
from depot_compliance.database import SessionLocal
from depot_compliance.logger import logger
from depot_compliance.models import (
    Depot,
    User,
    UserRole,
    DriverProfile,
    ComplianceType,
    DriverCompliance,
    RouteSection,
    DriverRouteAuth,
)

COMPLIANCE_TYPES = (
    ("PME", "Периодическое медицинское освидетельствование", 48),
    ("GRS", "Проверка знаний общих и дополнительных правил", 36),
    ("TR_4", "Техническое обучение TR-4", 36),
    ("OC", "Контрольная поездка (Observation Check)", 6),
)

COMPLIANCES = (
    ("PME", date(2023, 4, 4), date(2027, 4, 3), 48),
    ("GRS", date(2024, 11, 30), date(2027, 11, 29), 36),
    ("TR_4", date(2025, 1, 22), date(2028, 1, 21), 36),
    ("OC", date(2025, 11, 29), date(2026, 5, 28), 6),
)

ROUTE_SECTIONS = (
    ("CBE-ED", "Coimbatore to Erode", "Main line section"),
    ("ED-SA", "Erode to Salem", "Main line section"),
    ("SA-JTJ", "Salem to Jolarpettai", "Main line section"),
)

ROUTE_AUTHS = (
    ("CBE-ED", date(2025, 10, 8), date(2026, 1, 7)),
    ("ED-SA", date(2025, 9, 29), date(2025, 12, 28)),
    ("SA-JTJ", date(2025, 12, 24), date(2026, 3, 23)),
)

DRIVER_EMAIL = "durgadas.k@railway.com"
DRIVER_PF_NUMBER = "15629802390"


def _get_or_create_depot(db: Session) -> Depot:
    depot = db.query(Depot).filter(Depot.code == "CBE").first()
    if not depot:
        depot = Depot(name="Coimbatore Depot", code="CBE", address="Coimbatore, Tamil Nadu")
        db.add(depot)
        db.flush()
        logger.info("Создано депо", extra={"depot_code": depot.code})
    return depot


def _get_or_create_driver(db: Session, depot: Depot) -> DriverProfile:
    user = db.query(User).filter(User.email == DRIVER_EMAIL).first()
    if not user:
        password = os.getenv("SEED_DRIVER_PASSWORD", "DriverPassword123!")
        user = User(
            email=DRIVER_EMAIL,
            hashed_password=get_password_hash(password),
            role=UserRole.DRIVER.value,
            depot_id=depot.id,
            is_active=True,
        )
        db.add(user)
        db.flush()
        logger.info("Создан пользователь машиниста", extra={"email": DRIVER_EMAIL})

    profile = db.query(DriverProfile).filter(DriverProfile.pf_number == DRIVER_PF_NUMBER).first()
    if not profile:
        profile = DriverProfile(
            user_id=user.id,
            pf_number=DRIVER_PF_NUMBER,
            driver_name="Durgadas K",
            designation="TWD / PTJ (Tech-I / OHE / PTJ)",
            basic_pay=32900,
            date_of_appointment=date(2018, 2, 28),
            date_of_entry=date(2022, 1, 27),
            depot_id=depot.id,
        )
        db.add(profile)
        db.flush()
        logger.info("Создан профиль машиниста", extra={"pf_number": DRIVER_PF_NUMBER})
    return profile


def _seed_compliances(db: Session, profile: DriverProfile) -> int:
    types = {}
    for name, description, frequency in COMPLIANCE_TYPES:
        compliance_type = db.query(ComplianceType).filter(ComplianceType.name == name).first()
        if not compliance_type:
            compliance_type = ComplianceType(
                name=name, description=description, default_frequency_months=frequency
            )
            db.add(compliance_type)
            db.flush()
        types[name] = compliance_type

    created = 0
    for type_name, done_date, due_date, frequency in COMPLIANCES:
        compliance_type = types[type_name]
        exists = db.query(DriverCompliance).filter(
            DriverCompliance.driver_profile_id == profile.id,
            DriverCompliance.compliance_type_id == compliance_type.id,
            DriverCompliance.is_active == True,  # noqa: E712
            DriverCompliance.deleted_at.is_(None)
        ).first()
        if exists:
            continue
        db.add(DriverCompliance(
            driver_profile_id=profile.id,
            compliance_type_id=compliance_type.id,
            done_date=done_date,
            due_date=due_date,
            frequency_months=frequency,
        ))
        created += 1
    return created


def _seed_routes(db: Session, profile: DriverProfile) -> int:
    sections = {}
    for code, name, description in ROUTE_SECTIONS:
        section = db.query(RouteSection).filter(
            RouteSection.code == code,
            RouteSection.is_predefined == True,  # noqa: E712
            RouteSection.depot_id.is_(None)
        ).first()
        if not section:
            section = RouteSection(code=code, name=name, description=description, is_predefined=True)
            db.add(section)
            db.flush()
        sections[code] = section

    created = 0
    for code, authorized_date, expiry_date in ROUTE_AUTHS:
        section = sections[code]
        exists = db.query(DriverRouteAuth).filter(
            DriverRouteAuth.driver_profile_id == profile.id,
            DriverRouteAuth.route_section_id == section.id,
            DriverRouteAuth.is_active == True,  # noqa: E712
            DriverRouteAuth.deleted_at.is_(None)
        ).first()
        if exists:
            continue
        db.add(DriverRouteAuth(
            driver_profile_id=profile.id,
            route_section_id=section.id,
            authorized_date=authorized_date,
            expiry_date=expiry_date,
        ))
        created += 1
    return created


def seed(db: Session) -> dict:
    """
    Заполнение БД демонстрационными данными (идемпотентно)
    """
    try:
        depot = _get_or_create_depot(db)
        profile = _get_or_create_driver(db, depot)
        summary = {
            "compliances_created": _seed_compliances(db, profile),
            "route_auths_created": _seed_routes(db, profile),
        }
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Заполнение демонстрационными данными завершено", extra=summary)
    return summary


if __name__ == "__main__":
    session = SessionLocal()
    try:
        result = seed(session)
    finally:
        session.close()
    print(f"Создано записей о допусках: {result['compliances_created']}")
    print(f"Создано допусков к участкам: {result['route_auths_created']}")
