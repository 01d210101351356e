"""
Репозиторий для работы с пользователями
"""
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple
from depot_compliance.models import User, UserRole
from depot_compliance.repositories.scoping import only_active, apply_depot_scope, mark_deleted
from depot_compliance.services.access_scope import ScopeFilter


class UserRepository:
    """
    Репозиторий для работы с пользователями
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> Optional[User]:
        """
        Получение активного пользователя по ID
        """
        return only_active(self.db.query(User), User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        """
        Получение пользователя по email, включая удаленных
        """
        return self.db.query(User).filter(User.email == email).first()

    def get_all(
        self,
        scope: ScopeFilter,
        role: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[User], int]:
        """
        Получение списка активных пользователей, новые первыми

        Returns:
            tuple: (список пользователей, общее количество)
        """
        query = only_active(self.db.query(User), User)
        query = apply_depot_scope(query, scope, User.depot_id)

        if role:
            query = query.filter(User.role == role)

        total = query.count()
        users = query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit).all()
        return users, total

    def get_active_by_role(self, role: UserRole, depot_id: Optional[int] = None) -> List[User]:
        """
        Активные пользователи роли (опционально - конкретного депо)
        """
        query = only_active(self.db.query(User), User).filter(User.role == role.value)
        if depot_id is not None:
            query = query.filter(User.depot_id == depot_id)
        return query.order_by(User.email.asc()).all()

    def add(self, user: User) -> User:
        """
        Добавление пользователя в сессию без фиксации транзакции
        """
        self.db.add(user)
        self.db.flush()
        return user

    def save(self, user: User) -> User:
        self.db.commit()
        self.db.refresh(user)
        return user

    def soft_delete(self, user: User) -> User:
        mark_deleted(user)
        self.db.commit()
        self.db.refresh(user)
        return user
