"""
Сервис для работы с пользователями

Создание пользователя с email ранее удаленной учетной записи
не нарушает уникальность: удаленная запись восстанавливается.
"""
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple

from depot_compliance.auth import get_password_hash
from depot_compliance.exceptions import NotFoundError, ConflictError, BusinessValidationError
from depot_compliance.logger import logger
from depot_compliance.models import User, UserRole, AuditAction
from depot_compliance.repositories.depot_repository import DepotRepository
from depot_compliance.repositories.user_repository import UserRepository
from depot_compliance.repositories.scoping import mark_deleted
from depot_compliance.services.access_scope import CallerContext, resolve_scope, ensure_depot_access
from depot_compliance.services.audit_service import AuditService, AuditContext, entity_snapshot


ENTITY_TYPE = "User"

ROLES_WITH_DEPOT = (UserRole.DEPOT_MANAGER, UserRole.DRIVER)


class CreateNew:
    """Учетной записи с таким email нет - создается новая"""

    def __repr__(self) -> str:
        return "CreateNew()"


class ReactivateUser:
    """Есть удаленная учетная запись с таким email - она восстанавливается"""

    def __init__(self, user: User):
        self.user = user

    def __repr__(self) -> str:
        return f"ReactivateUser(user_id={self.user.id})"


def is_live(entity) -> bool:
    """Запись активна и не удалена"""
    return entity.is_active and entity.deleted_at is None


def restore(entity) -> None:
    """Снятие отметки мягкого удаления"""
    entity.is_active = True
    entity.deleted_at = None


class UserService:
    """
    Сервис для работы с пользователями
    """

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.depot_repo = DepotRepository(db)
        self.audit = AuditService(db)

    def resolve_creation(self, email: str):
        """
        Решение о создании учетной записи по email

        Returns:
            CreateNew или ReactivateUser

        Raises:
            ConflictError: Активный пользователь с таким email уже существует
        """
        existing = self.user_repo.get_by_email(email)
        if existing is None:
            return CreateNew()
        if is_live(existing):
            raise ConflictError("Пользователь с таким email уже существует")
        return ReactivateUser(existing)

    def _check_role_depot(self, role: UserRole, depot_id: Optional[int]) -> Optional[int]:
        """
        Согласованность роли и депо

        Returns:
            ID депо, которое будет сохранено (для суперадминистратора - None)
        """
        if role == UserRole.SUPER_ADMIN:
            return None
        if depot_id is None:
            raise BusinessValidationError(f"Для роли {role.value} необходимо указать депо")
        if not self.depot_repo.get_by_id(depot_id):
            raise NotFoundError(f"Депо с ID {depot_id} не найдено")
        return depot_id

    def create_user(
        self,
        caller: CallerContext,
        email: str,
        password: str,
        role: UserRole,
        depot_id: Optional[int] = None
    ) -> User:
        """
        Создание пользователя или восстановление удаленного

        Raises:
            BusinessValidationError: Для роли не указано депо
            NotFoundError: Депо не найдено
            ConflictError: Email занят активным пользователем
        """
        role = UserRole(role)
        depot_id = self._check_role_depot(role, depot_id)
        decision = self.resolve_creation(email)

        if isinstance(decision, ReactivateUser):
            user = decision.user
            old_value = entity_snapshot(user)
            restore(user)
            user.hashed_password = get_password_hash(password)
            user.role = role.value
            user.depot_id = depot_id
            user = self.user_repo.save(user)
            logger.info("Восстановлен удаленный пользователь", extra={"user_id": user.id, "created_by": caller.user_id})
            self.audit.log(
                AuditContext.from_caller(caller, depot_id),
                ENTITY_TYPE, user.id, AuditAction.UPDATE,
                old_value=old_value, new_value=entity_snapshot(user),
            )
            return user

        user = User(
            email=email,
            hashed_password=get_password_hash(password),
            role=role.value,
            depot_id=depot_id,
            is_active=True,
        )
        self.user_repo.add(user)
        user = self.user_repo.save(user)
        logger.info(
            "Создан новый пользователь",
            extra={"user_id": user.id, "created_by": caller.user_id, "role": user.role}
        )
        self.audit.log(
            AuditContext.from_caller(caller, depot_id),
            ENTITY_TYPE, user.id, AuditAction.CREATE,
            new_value=entity_snapshot(user),
        )
        return user

    def get_users(
        self,
        caller: CallerContext,
        role: Optional[UserRole] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[User], int]:
        """
        Список пользователей в области видимости, новые первыми
        """
        scope = resolve_scope(caller).filter
        return self.user_repo.get_all(
            scope,
            role=UserRole(role).value if role else None,
            skip=skip,
            limit=limit
        )

    def get_user(self, caller: CallerContext, user_id: int) -> User:
        """
        Получение пользователя по ID

        Raises:
            NotFoundError: Пользователь не найден или удален
            ForbiddenError: Пользователь другого депо
        """
        # Проверка менеджера без депо выполняется до поиска
        resolve_scope(caller)
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("Пользователь не найден")
        if not caller.is_super_admin:
            ensure_depot_access(caller, user.depot_id, "Нет доступа к пользователю другого депо")
        return user

    def get_depot_admins(self) -> List[User]:
        """
        Активные менеджеры депо
        """
        return self.user_repo.get_active_by_role(UserRole.DEPOT_MANAGER)

    def update_user(
        self,
        caller: CallerContext,
        user_id: int,
        email: Optional[str] = None,
        password: Optional[str] = None,
        role: Optional[UserRole] = None,
        depot_id: Optional[int] = None
    ) -> User:
        """
        Обновление email, роли, депо или пароля пользователя

        Raises:
            NotFoundError: Пользователь или депо не найдены
            ConflictError: Email занят другим пользователем
            BusinessValidationError: Роль требует депо
        """
        user = self.get_user(caller, user_id)
        old_value = entity_snapshot(user)

        if email and email != user.email:
            existing = self.user_repo.get_by_email(email)
            if existing and existing.id != user.id:
                raise ConflictError("Пользователь с таким email уже существует")

        new_role = UserRole(role) if role else UserRole(user.role)
        new_depot_id = depot_id if depot_id is not None else user.depot_id
        new_depot_id = self._check_role_depot(new_role, new_depot_id)

        if email:
            user.email = email
        if password:
            user.hashed_password = get_password_hash(password)
        user.role = new_role.value
        user.depot_id = new_depot_id

        user = self.user_repo.save(user)
        logger.info("Обновлен пользователь", extra={"user_id": user.id, "updated_by": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, user.depot_id),
            ENTITY_TYPE, user.id, AuditAction.UPDATE,
            old_value=old_value, new_value=entity_snapshot(user),
        )
        return user

    def delete_user(self, caller: CallerContext, user_id: int) -> User:
        """
        Мягкое удаление пользователя

        Raises:
            NotFoundError: Пользователь не найден или уже удален
            BusinessValidationError: Попытка удалить собственную учетную запись
        """
        user = self.get_user(caller, user_id)
        if user.id == caller.user_id:
            raise BusinessValidationError("Нельзя удалить собственную учетную запись")

        old_value = entity_snapshot(user)
        # Профиль машиниста удаляется вместе с учетной записью
        if user.driver_profile is not None and is_live(user.driver_profile):
            mark_deleted(user.driver_profile)
        user = self.user_repo.soft_delete(user)
        logger.info("Удален пользователь", extra={"user_id": user.id, "deleted_by": caller.user_id})

        self.audit.log(
            AuditContext.from_caller(caller, user.depot_id),
            ENTITY_TYPE, user.id, AuditAction.DELETE,
            old_value=old_value,
        )
        return user


def create_super_admin_if_not_exists(db: Session, email: Optional[str], password: Optional[str]) -> Optional[User]:
    """
    Создание суперадминистратора при запуске приложения

    Если email или пароль не заданы, создание пропускается.

    Returns:
        Созданный или восстановленный пользователь, иначе None
    """
    if not email or not password:
        logger.warning("SUPER_ADMIN_EMAIL или SUPER_ADMIN_PASSWORD не заданы, суперадминистратор не создается")
        return None

    user_repo = UserRepository(db)
    email = email.strip().lower()
    existing = user_repo.get_by_email(email)

    if existing is not None and is_live(existing):
        logger.debug("Суперадминистратор уже существует", extra={"user_id": existing.id})
        return None

    if existing is not None:
        restore(existing)
        existing.role = UserRole.SUPER_ADMIN.value
        existing.depot_id = None
        existing.hashed_password = get_password_hash(password)
        user = user_repo.save(existing)
        logger.info("Восстановлена учетная запись суперадминистратора", extra={"user_id": user.id})
        return user

    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        role=UserRole.SUPER_ADMIN.value,
        is_active=True,
    )
    user_repo.add(user)
    user = user_repo.save(user)
    logger.info("Создана учетная запись суперадминистратора", extra={"user_id": user.id})
    return user
