"""
Репозиторий для работы с уведомлениями
"""
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple
from datetime import datetime
from depot_compliance.models import Notification


class NotificationRepository:
    """
    Репозиторий для работы с уведомлениями
    Инкапсулирует логику доступа к данным
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, notification_id: int) -> Optional[Notification]:
        """
        Получение уведомления по ID
        """
        return self.db.query(Notification).filter(Notification.id == notification_id).first()

    def get_all(
        self,
        user_id: int,
        is_read: Optional[bool] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[Notification], int]:
        """
        Получение уведомлений пользователя, новые первыми

        Returns:
            tuple: (список уведомлений, общее количество)
        """
        query = self.db.query(Notification).filter(Notification.user_id == user_id)

        if is_read is not None:
            query = query.filter(Notification.is_read.is_(is_read))

        total = query.count()
        notifications = (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return notifications, total

    def get_unread_count(self, user_id: int) -> int:
        """
        Получение количества непрочитанных уведомлений
        """
        return self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read.is_(False)
        ).count()

    def has_unread(
        self,
        user_id: int,
        category: str,
        related_entity_type: str,
        related_entity_id: int
    ) -> bool:
        """
        Есть ли непрочитанное уведомление той же категории по той же записи
        """
        return self.db.query(Notification.id).filter(
            Notification.user_id == user_id,
            Notification.category == category,
            Notification.related_entity_type == related_entity_type,
            Notification.related_entity_id == related_entity_id,
            Notification.is_read.is_(False)
        ).first() is not None

    def create(self, **kwargs) -> Notification:
        """
        Создание уведомления
        """
        notification = Notification(**kwargs)
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_as_read(self, user_id: int, notification_id: Optional[int] = None) -> int:
        """
        Отметка уведомлений пользователя как прочитанных

        Args:
            user_id: ID пользователя
            notification_id: ID уведомления (если None, помечаются все непрочитанные)

        Returns:
            int: Количество помеченных уведомлений
        """
        query = self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read.is_(False)
        )

        if notification_id is not None:
            query = query.filter(Notification.id == notification_id)

        updated_count = query.update({
            Notification.is_read: True,
            Notification.read_at: datetime.utcnow()
        }, synchronize_session=False)

        self.db.commit()
        return updated_count
