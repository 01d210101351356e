"""
Сервис уведомлений

In-app уведомления и письма о сроках допусков машинистов. Уведомление
каждого получателя изолировано: ошибка для одного получателя логируется
и не мешает остальным, а ошибка письма не отменяет in-app уведомление.
"""
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple

from depot_compliance.config import NOTIFICATION_MODE_EVERY_RUN, NOTIFICATION_MODE_ONCE_UNTIL_READ
from depot_compliance.logger import logger
from depot_compliance.models import Notification, NotificationCategory, DriverCompliance, User, UserRole
from depot_compliance.repositories.notification_repository import NotificationRepository
from depot_compliance.repositories.user_repository import UserRepository
from depot_compliance.services.email_service import EmailService


RELATED_ENTITY_TYPE = "DriverCompliance"
USER_NOTIFICATIONS_LIMIT = 50


def _format_date(value) -> str:
    return value.strftime("%d.%m.%Y")


class NotificationService:
    """
    Сервис для работы с уведомлениями
    """

    def __init__(
        self,
        db: Session,
        email_service: Optional[EmailService] = None,
        mode: str = NOTIFICATION_MODE_EVERY_RUN
    ):
        """
        Args:
            email_service: Отправка писем (по умолчанию - из настроек приложения)
            mode: every_run - уведомлять при каждом запуске,
                once_until_read - не повторять, пока есть непрочитанное
        """
        self.db = db
        self.notification_repo = NotificationRepository(db)
        self.user_repo = UserRepository(db)
        self.email_service = email_service or EmailService()
        self.mode = mode

    def create_notification(
        self,
        user_id: int,
        title: str,
        message: str,
        category: Optional[str] = None,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[int] = None
    ) -> Notification:
        """
        Создание in-app уведомления
        """
        return self.notification_repo.create(
            user_id=user_id,
            title=title,
            message=message,
            category=category,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            is_read=False,
        )

    def _is_suppressed(self, user_id: int, category: NotificationCategory, compliance_id: int) -> bool:
        if self.mode != NOTIFICATION_MODE_ONCE_UNTIL_READ:
            return False
        return self.notification_repo.has_unread(user_id, category.value, RELATED_ENTITY_TYPE, compliance_id)

    def _notify_recipient(
        self,
        recipient: User,
        title: str,
        message: str,
        category: NotificationCategory,
        compliance_id: int
    ) -> bool:
        """
        Уведомление одного получателя: in-app, затем письмо

        Returns:
            True если создано in-app уведомление
        """
        try:
            if self._is_suppressed(recipient.id, category, compliance_id):
                logger.debug(
                    "Повторное уведомление пропущено: есть непрочитанное",
                    extra={"user_id": recipient.id, "compliance_id": compliance_id, "category": category.value}
                )
                return False

            self.create_notification(
                user_id=recipient.id,
                title=title,
                message=message,
                category=category.value,
                related_entity_type=RELATED_ENTITY_TYPE,
                related_entity_id=compliance_id,
            )
        except Exception as e:
            self.db.rollback()
            logger.error(
                f"Не удалось уведомить пользователя: {e}",
                extra={"user_id": recipient.id, "compliance_id": compliance_id, "category": category.value},
                exc_info=True
            )
            return False

        # Письмо отправляется после сохранения in-app уведомления
        try:
            self.email_service.send_email(recipient.email, title, message)
        except Exception as e:
            logger.error(
                f"Не удалось отправить письмо пользователю: {e}",
                extra={"user_id": recipient.id, "compliance_id": compliance_id},
                exc_info=True
            )
        return True

    def _depot_managers(self, depot_id: int) -> List[User]:
        return self.user_repo.get_active_by_role(UserRole.DEPOT_MANAGER, depot_id)

    def send_compliance_due_soon_notification(self, compliance: DriverCompliance) -> int:
        """
        Уведомление о приближении срока: машинисту и менеджерам его депо

        Returns:
            int: Количество созданных уведомлений
        """
        profile = compliance.driver_profile
        type_name = compliance.compliance_type.name
        due = _format_date(compliance.due_date)
        category = NotificationCategory.COMPLIANCE_DUE_SOON

        title = f"{type_name}: скоро срок"
        message = f"Срок прохождения {type_name} - {due}. Пожалуйста, пройдите проверку вовремя."

        created = 0
        if profile.user is not None and self._notify_recipient(profile.user, title, message, category, compliance.id):
            created += 1

        for manager in self._depot_managers(profile.depot_id):
            manager_title = f"Машинист {profile.driver_name} - {title}"
            manager_message = (
                f"У машиниста {profile.driver_name} (PF: {profile.pf_number}) "
                f"срок {type_name} наступает {due}."
            )
            if self._notify_recipient(manager, manager_title, manager_message, category, compliance.id):
                created += 1

        return created

    def send_compliance_overdue_notification(self, compliance: DriverCompliance) -> int:
        """
        Уведомление о просрочке: машинисту, менеджерам депо
        и всем суперадминистраторам (эскалация)

        Returns:
            int: Количество созданных уведомлений
        """
        profile = compliance.driver_profile
        type_name = compliance.compliance_type.name
        due = _format_date(compliance.due_date)
        category = NotificationCategory.COMPLIANCE_OVERDUE

        title = f"{type_name}: срок истек"
        message = f"Срок прохождения {type_name} истек {due}. Пожалуйста, пройдите проверку немедленно."

        created = 0
        if profile.user is not None and self._notify_recipient(profile.user, title, message, category, compliance.id):
            created += 1

        for manager in self._depot_managers(profile.depot_id):
            manager_title = f"СРОЧНО: Машинист {profile.driver_name} - {title}"
            manager_message = (
                f"У машиниста {profile.driver_name} (PF: {profile.pf_number}) "
                f"срок {type_name} истек {due}."
            )
            if self._notify_recipient(manager, manager_title, manager_message, category, compliance.id):
                created += 1

        depot_name = profile.depot.name if profile.depot else ""
        for admin in self.user_repo.get_active_by_role(UserRole.SUPER_ADMIN):
            admin_title = f"ЭСКАЛАЦИЯ: {profile.driver_name} - {title}"
            admin_message = (
                f"Машинист {profile.driver_name} (PF: {profile.pf_number}) из депо {depot_name} "
                f"просрочил {type_name}, срок истек {due}."
            )
            if self._notify_recipient(admin, admin_title, admin_message, category, compliance.id):
                created += 1

        return created

    def get_user_notifications(
        self,
        user_id: int,
        is_read: Optional[bool] = None
    ) -> Tuple[List[Notification], int, int]:
        """
        Последние уведомления пользователя, новые первыми

        Returns:
            tuple: (уведомления, общее количество, количество непрочитанных)
        """
        notifications, total = self.notification_repo.get_all(
            user_id=user_id,
            is_read=is_read,
            limit=USER_NOTIFICATIONS_LIMIT
        )
        unread_count = self.notification_repo.get_unread_count(user_id)
        return notifications, total, unread_count

    def get_unread_count(self, user_id: int) -> int:
        return self.notification_repo.get_unread_count(user_id)

    def mark_as_read(self, notification_id: int, user_id: int) -> int:
        """
        Отметка уведомления как прочитанного (только своего)

        Returns:
            int: Количество помеченных уведомлений (0 или 1)
        """
        return self.notification_repo.mark_as_read(user_id, notification_id)

    def mark_all_as_read(self, user_id: int) -> int:
        updated = self.notification_repo.mark_as_read(user_id)
        logger.info("Все уведомления отмечены прочитанными", extra={"user_id": user_id, "updated": updated})
        return updated
