"""
Планировщик ежедневной проверки сроков допусков

Раз в сутки (по умолчанию в 09:00 по времени процесса) выполняются
два независимых прохода: о приближающихся сроках и о просроченных.
"""
import asyncio
from datetime import date
from typing import Optional, Dict, List, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from depot_compliance.config import Settings
from depot_compliance.logger import logger
from depot_compliance.middleware.prometheus_metrics import record_compliance_check
from depot_compliance.repositories.compliance_repository import ComplianceRepository
from depot_compliance.services.cache_service import SettingsCache
from depot_compliance.services.email_service import EmailService
from depot_compliance.services.notification_service import NotificationService
from depot_compliance.services.system_settings_service import SystemSettingsService, NOTIFICATION_BEFORE_DAYS
from depot_compliance.utils.date_utils import add_days, utc_today


JOB_ID = "compliance_notifications"


class PassResult:
    """Итог одного прохода проверки"""

    def __init__(self, records: int = 0, notifications: int = 0, failed: bool = False):
        self.records = records
        self.notifications = notifications
        self.failed = failed


class ComplianceCheckRunner:
    """
    Проходы проверки сроков в рамках одной сессии БД
    """

    def __init__(self, db: Session, settings_service: SystemSettingsService, notification_service: NotificationService):
        self.db = db
        self.compliance_repo = ComplianceRepository(db)
        self.settings_service = settings_service
        self.notification_service = notification_service

    def run_due_soon_pass(self, today: date) -> PassResult:
        """
        Допуски со сроком в [today, today + NOTIFICATION_BEFORE_DAYS] (обе границы включительно)
        """
        before_days = self.settings_service.get_int_or_default(NOTIFICATION_BEFORE_DAYS)
        compliances = self.compliance_repo.get_due_between(today, add_days(today, before_days))

        result = PassResult(records=len(compliances))
        for compliance in compliances:
            try:
                result.notifications += self.notification_service.send_compliance_due_soon_notification(compliance)
            except Exception as e:
                logger.error(
                    f"Ошибка уведомления о приближении срока: {e}",
                    extra={"compliance_id": compliance.id},
                    exc_info=True
                )

        logger.info(
            "Проверка приближающихся сроков завершена",
            extra={"records": result.records, "notifications": result.notifications, "before_days": before_days}
        )
        return result

    def run_overdue_pass(self, today: date) -> PassResult:
        """
        Допуски со сроком раньше today
        """
        compliances = self.compliance_repo.get_overdue(today)

        result = PassResult(records=len(compliances))
        for compliance in compliances:
            try:
                result.notifications += self.notification_service.send_compliance_overdue_notification(compliance)
            except Exception as e:
                logger.error(
                    f"Ошибка уведомления о просрочке: {e}",
                    extra={"compliance_id": compliance.id},
                    exc_info=True
                )

        logger.info(
            "Проверка просроченных допусков завершена",
            extra={"records": result.records, "notifications": result.notifications}
        )
        return result

    def _guarded(self, name: str, run: Callable[[date], PassResult], today: date) -> PassResult:
        try:
            return run(today)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Ошибка прохода проверки '{name}': {e}", extra={"pass": name}, exc_info=True)
            return PassResult(failed=True)

    def run_all(self, today: date) -> Dict[str, int]:
        """
        Оба прохода; ошибка одного не мешает другому

        Returns:
            dict: due_soon_records, overdue_records, notifications_created
        """
        due_soon = self._guarded("due_soon", self.run_due_soon_pass, today)
        overdue = self._guarded("overdue", self.run_overdue_pass, today)
        result = {
            "due_soon_records": due_soon.records,
            "overdue_records": overdue.records,
            "notifications_created": due_soon.notifications + overdue.notifications,
        }
        record_compliance_check(result)
        return result


class NotificationScheduler:
    """
    Ежедневный запуск проверки сроков через APScheduler
    """

    def __init__(self, session_factory: Callable[[], Session], cache: SettingsCache, settings: Settings):
        self._session_factory = session_factory
        self._cache = cache
        self._settings = settings
        self._scheduler = AsyncIOScheduler()

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self):
        """
        Запустить планировщик
        """
        if self._scheduler.running:
            logger.warning("Планировщик уже запущен")
            return

        self._scheduler.add_job(
            func=self._run_async,
            trigger=CronTrigger(
                hour=self._settings.notification_cron_hour,
                minute=self._settings.notification_cron_minute
            ),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=300
        )
        self._scheduler.start()

        job = self._scheduler.get_job(JOB_ID)
        logger.info("Планировщик уведомлений запущен", extra={
            "job_id": JOB_ID,
            "next_run_time": job.next_run_time.isoformat() if job and job.next_run_time else None,
            "event_type": "scheduler",
            "event_category": "startup"
        })

    def shutdown(self):
        if self._scheduler.running:
            self._scheduler.shutdown()
            logger.info("Планировщик уведомлений остановлен")

    async def _run_async(self):
        # Проходы синхронные (SQLAlchemy, smtplib), выполняются в пуле потоков
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self.run_checks)

    def run_checks(self, today: Optional[date] = None) -> Dict[str, int]:
        """
        Выполнить проверку сроков в отдельной сессии БД
        """
        today = today or utc_today()
        logger.info("Запуск проверки сроков допусков", extra={"today": today.isoformat(), "event_type": "scheduler"})

        db = self._session_factory()
        try:
            runner = ComplianceCheckRunner(
                db,
                SystemSettingsService(db, self._cache),
                NotificationService(db, EmailService(self._settings), mode=self._settings.notification_mode),
            )
            return runner.run_all(today)
        finally:
            db.close()

    def get_scheduled_jobs(self) -> List[Dict]:
        """
        Список задач планировщика
        """
        jobs = []
        for job in self._scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger)
            })
        return jobs
