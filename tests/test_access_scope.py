"""
Unit тесты области видимости данных
"""
import pytest
from types import SimpleNamespace

from depot_compliance.exceptions import ForbiddenError
from depot_compliance.models import UserRole
from depot_compliance.services.access_scope import (
    CallerContext,
    resolve_scope,
    ensure_depot_access,
    ensure_profile_access,
    audit_depot_id,
)


def _caller(role: UserRole, depot_id=None, user_id=1) -> CallerContext:
    return CallerContext(user_id=user_id, role=role.value, depot_id=depot_id)


class TestResolveScope:
    """Тесты для resolve_scope"""

    def test_super_admin_unrestricted(self):
        decision = resolve_scope(_caller(UserRole.SUPER_ADMIN), target_depot_id=42)
        assert decision.allow is True
        assert decision.filter.unrestricted is True

    def test_manager_own_depot_allowed(self):
        decision = resolve_scope(_caller(UserRole.DEPOT_MANAGER, depot_id=1), target_depot_id=1)
        assert decision.allow is True
        assert decision.filter.depot_id == 1
        assert decision.filter.unrestricted is False

    def test_manager_other_depot_denied(self):
        decision = resolve_scope(_caller(UserRole.DEPOT_MANAGER, depot_id=1), target_depot_id=2)
        assert decision.allow is False

    def test_manager_listing_without_target(self):
        decision = resolve_scope(_caller(UserRole.DEPOT_MANAGER, depot_id=1))
        assert decision.allow is True
        assert decision.filter.depot_id == 1

    def test_manager_without_depot_forbidden(self):
        """Менеджер без депо не получает доступ ни к чему"""
        with pytest.raises(ForbiddenError):
            resolve_scope(_caller(UserRole.DEPOT_MANAGER, depot_id=None))

    def test_driver_filtered_by_owner(self):
        decision = resolve_scope(_caller(UserRole.DRIVER, depot_id=1, user_id=7))
        assert decision.filter.driver_user_id == 7
        assert decision.filter.depot_id == 1


class TestEnsureAccess:
    """Тесты для проверок доступа по ID"""

    def test_ensure_depot_access_raises_for_other_depot(self):
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_depot_access(_caller(UserRole.DEPOT_MANAGER, depot_id=1), 2, "Нет доступа")
        assert exc_info.value.message == "Нет доступа"

    @pytest.mark.parametrize("role", [UserRole.DEPOT_MANAGER, UserRole.DRIVER])
    def test_object_without_depot_denied(self, role):
        """Объект без депо не совпадает с депо вызывающего"""
        with pytest.raises(ForbiddenError):
            ensure_depot_access(_caller(role, depot_id=1), None)

    def test_object_without_depot_for_super_admin(self):
        scope = ensure_depot_access(_caller(UserRole.SUPER_ADMIN), None)
        assert scope.unrestricted is True

    def test_driver_own_profile(self):
        profile = SimpleNamespace(user_id=7, depot_id=1)
        ensure_profile_access(_caller(UserRole.DRIVER, depot_id=1, user_id=7), profile)

    def test_driver_foreign_profile_same_depot(self):
        """Машинист не видит профили коллег даже своего депо"""
        profile = SimpleNamespace(user_id=8, depot_id=1)
        with pytest.raises(ForbiddenError):
            ensure_profile_access(_caller(UserRole.DRIVER, depot_id=1, user_id=7), profile)

    def test_manager_foreign_depot_profile(self):
        profile = SimpleNamespace(user_id=8, depot_id=2)
        with pytest.raises(ForbiddenError):
            ensure_profile_access(_caller(UserRole.DEPOT_MANAGER, depot_id=1), profile)

    def test_audit_depot_prefers_caller_depot(self):
        assert audit_depot_id(_caller(UserRole.DEPOT_MANAGER, depot_id=1), 2) == 1
        assert audit_depot_id(_caller(UserRole.SUPER_ADMIN), 2) == 2
