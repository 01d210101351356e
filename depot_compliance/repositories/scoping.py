"""
Общие фильтры выборки: мягкое удаление и область видимости вызывающего
"""
from datetime import datetime

from sqlalchemy import false
from sqlalchemy.orm import Query

from depot_compliance.models import DriverProfile
from depot_compliance.services.access_scope import ScopeFilter


def only_active(query: Query, model) -> Query:
    """
    Только активные и не удаленные записи
    """
    return query.filter(model.is_active.is_(True), model.deleted_at.is_(None))


def apply_depot_scope(query: Query, scope: ScopeFilter, depot_column) -> Query:
    """
    Фильтр для сущностей, принадлежащих депо напрямую (или через join)
    """
    if scope.unrestricted:
        return query
    if scope.depot_id is None:
        return query.filter(false())
    return query.filter(depot_column == scope.depot_id)


def apply_profile_scope(query: Query, scope: ScopeFilter) -> Query:
    """
    Фильтр для записей машиниста. Запрос должен содержать join с DriverProfile

    Машинист видит только записи своего профиля, менеджер - профили своего депо.
    """
    if scope.unrestricted:
        return query
    if scope.driver_user_id is not None:
        return query.filter(DriverProfile.user_id == scope.driver_user_id)
    return apply_depot_scope(query, scope, DriverProfile.depot_id)


def mark_deleted(entity) -> None:
    """
    Мягкое удаление: запись деактивируется и получает дату удаления
    """
    entity.is_active = False
    entity.deleted_at = datetime.utcnow()
