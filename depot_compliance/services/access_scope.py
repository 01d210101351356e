"""
Контекст вызывающего пользователя и правила области видимости данных

Каждый вызов сервиса получает явный CallerContext. По роли и депо
вызывающего resolve_scope решает, разрешен ли доступ к объекту,
и какой неявный фильтр применить к выборке списка.
"""
from typing import Optional

from depot_compliance.exceptions import ForbiddenError
from depot_compliance.models import UserRole


MANAGER_WITHOUT_DEPOT_MESSAGE = "Менеджер депо должен быть привязан к депо"


class CallerContext:
    """
    Контекст авторизации вызывающего пользователя

    Формируется из учетной записи при каждом запросе и передается
    во все методы сервисов. В тестах создается напрямую.
    """

    def __init__(
        self,
        user_id: int,
        role: str,
        depot_id: Optional[int] = None,
        email: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ):
        self.user_id = user_id
        self.role = UserRole(role)
        self.depot_id = depot_id
        self.email = email
        self.ip_address = ip_address
        self.user_agent = user_agent

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    @property
    def is_depot_manager(self) -> bool:
        return self.role == UserRole.DEPOT_MANAGER

    @property
    def is_driver(self) -> bool:
        return self.role == UserRole.DRIVER

    def __repr__(self) -> str:
        return f"CallerContext(user_id={self.user_id}, role={self.role.value}, depot_id={self.depot_id})"


class ScopeFilter:
    """
    Неявный фильтр выборки

    unrestricted: фильтр не применяется (суперадминистратор)
    depot_id: ограничение по депо (для сущностей, принадлежащих депо)
    driver_user_id: ограничение по владельцу профиля машиниста
    """

    def __init__(
        self,
        unrestricted: bool = False,
        depot_id: Optional[int] = None,
        driver_user_id: Optional[int] = None,
    ):
        self.unrestricted = unrestricted
        self.depot_id = depot_id
        self.driver_user_id = driver_user_id

    def __repr__(self) -> str:
        return (
            f"ScopeFilter(unrestricted={self.unrestricted}, depot_id={self.depot_id}, "
            f"driver_user_id={self.driver_user_id})"
        )


class ScopeDecision:
    """
    Результат разрешения области видимости
    """

    def __init__(self, allow: bool, filter: ScopeFilter):
        self.allow = allow
        self.filter = filter


def resolve_scope(caller: CallerContext, target_depot_id: Optional[int] = None) -> ScopeDecision:
    """
    Определение области видимости вызывающего пользователя

    Args:
        caller: Контекст вызывающего пользователя
        target_depot_id: Депо целевого объекта (для доступа по ID)

    Returns:
        ScopeDecision: разрешение доступа и фильтр выборки

    Raises:
        ForbiddenError: Менеджер депо не привязан к депо
    """
    if caller.is_super_admin:
        return ScopeDecision(allow=True, filter=ScopeFilter(unrestricted=True))

    if caller.is_depot_manager:
        if caller.depot_id is None:
            raise ForbiddenError(MANAGER_WITHOUT_DEPOT_MESSAGE)
        allow = target_depot_id is None or target_depot_id == caller.depot_id
        return ScopeDecision(allow=allow, filter=ScopeFilter(depot_id=caller.depot_id))

    # Машинист видит только свой профиль и связанные с ним записи,
    # а объекты депо (оборудование) - только своего депо
    allow = target_depot_id is None or target_depot_id == caller.depot_id
    return ScopeDecision(
        allow=allow,
        filter=ScopeFilter(depot_id=caller.depot_id, driver_user_id=caller.user_id),
    )


def ensure_depot_access(caller: CallerContext, target_depot_id: Optional[int], message: str = "Доступ запрещен") -> ScopeFilter:
    """
    Проверка доступа к объекту конкретного депо

    Объект без депо (например, суперадминистратор) доступен только
    суперадминистратору.

    Raises:
        ForbiddenError: Объект принадлежит другому депо или не привязан к депо
    """
    decision = resolve_scope(caller, target_depot_id)
    if not decision.allow:
        raise ForbiddenError(message)
    if target_depot_id is None and not caller.is_super_admin:
        raise ForbiddenError(message)
    return decision.filter


def audit_depot_id(caller: CallerContext, entity_depot_id: Optional[int]) -> Optional[int]:
    """
    Депо для записи аудита: депо вызывающего, иначе депо объекта
    """
    return caller.depot_id if caller.depot_id is not None else entity_depot_id


def ensure_profile_access(caller: CallerContext, profile) -> None:
    """
    Проверка доступа к профилю машиниста и его записям

    Машинист - только свой профиль, менеджер - профили своего депо.

    Raises:
        ForbiddenError: Профиль вне области видимости
    """
    if caller.is_super_admin:
        return
    if caller.is_driver:
        if profile.user_id != caller.user_id:
            raise ForbiddenError("Доступ запрещен")
        return
    ensure_depot_access(caller, profile.depot_id, "Нет доступа к машинисту другого депо")
