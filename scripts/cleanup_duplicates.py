"""
Скрипт очистки дублирующихся активных записей допусков

Для каждой пары (машинист, тип допуска) и (машинист, участок) остается
самая старая активная запись, остальные мягко удаляются. Нужен перед
созданием частичных уникальных индексов на унаследованных данных.

Запуск: python -m scripts.cleanup_duplicates [--dry-run]
"""
import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List

# Добавляем путь к приложению
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.orm import Session

from depot_compliance.database import SessionLocal
from depot_compliance.logger import logger
from depot_compliance.models import DriverCompliance, DriverRouteAuth


def _find_duplicates(db: Session, model, pair_columns) -> List[List]:
    """
    Группы активных записей одной пары, упорядоченные от самой старой
    """
    rows = db.query(model).filter(
        model.is_active == True,  # noqa: E712
        model.deleted_at.is_(None)
    ).order_by(*pair_columns, model.created_at, model.id).all()

    groups: Dict[tuple, List] = {}
    for row in rows:
        key = tuple(getattr(row, column.key) for column in pair_columns)
        groups.setdefault(key, []).append(row)

    return [group for group in groups.values() if len(group) > 1]


def _soft_delete_extra(db: Session, groups: List[List], label: str, dry_run: bool) -> int:
    removed = 0
    now = datetime.utcnow()
    for group in groups:
        keep, extra = group[0], group[1:]
        logger.info(
            f"{label}: оставлена запись {keep.id}, к удалению {[row.id for row in extra]}",
            extra={"keep_id": keep.id, "dry_run": dry_run}
        )
        for row in extra:
            if not dry_run:
                row.is_active = False
                row.deleted_at = now
            removed += 1
    return removed


def cleanup_duplicates(db: Session, dry_run: bool = False) -> Dict[str, int]:
    """
    Мягкое удаление дублей допусков и допусков к участкам

    Returns:
        dict: compliance_groups, compliance_removed, route_auth_groups, route_auth_removed
    """
    compliance_groups = _find_duplicates(
        db, DriverCompliance, (DriverCompliance.driver_profile_id, DriverCompliance.compliance_type_id)
    )
    route_auth_groups = _find_duplicates(
        db, DriverRouteAuth, (DriverRouteAuth.driver_profile_id, DriverRouteAuth.route_section_id)
    )

    try:
        summary = {
            "compliance_groups": len(compliance_groups),
            "compliance_removed": _soft_delete_extra(db, compliance_groups, "Допуски", dry_run),
            "route_auth_groups": len(route_auth_groups),
            "route_auth_removed": _soft_delete_extra(db, route_auth_groups, "Допуски к участкам", dry_run),
        }
        if dry_run:
            db.rollback()
        else:
            db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Очистка дублей завершена", extra={"dry_run": dry_run, **summary})
    return summary


def main(argv=None):
    parser = argparse.ArgumentParser(description="Очистка дублирующихся активных записей допусков")
    parser.add_argument("--dry-run", action="store_true", help="Только показать, что будет удалено")
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        summary = cleanup_duplicates(db, dry_run=args.dry_run)
    finally:
        db.close()

    mode = "пробный запуск" if args.dry_run else "изменения сохранены"
    print(f"Очистка дублей ({mode}):")
    print(f"  Допуски: групп {summary['compliance_groups']}, удалено {summary['compliance_removed']}")
    print(f"  Допуски к участкам: групп {summary['route_auth_groups']}, удалено {summary['route_auth_removed']}")


if __name__ == "__main__":
    main()
