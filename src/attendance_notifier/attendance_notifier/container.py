from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .alerts.config import AlertConfigProvider, alert_config_from_settings
from .alerts.evaluator import AlertEvaluator
from .alerts.mysql_alert_config_repository import MySQLAlertConfigRepository
from .alerts.mysql_alert_repository import MySQLAlertRepository
from .alerts.service import AlertService
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .bounces.mysql_bounce_repository import MySQLBounceRepository
from .bounces.registry import BounceRegistry
from .core.constants import DEFAULT_EVALUATION_WINDOW_DAYS
from .database.connection import DBConfig, DatabaseConnection
from .notifications.mysql_scheduled_email_repository import MySQLScheduledEmailRepository
from .notifications.recipients import RecipientFilter, RecipientResolver
from .notifications.scheduler import NotificationScheduler
from .notifications.service import EmailQueueService
from .notifications.transport import EmailTransport, SMTPEmailTransport
from .notifications.worker import DeliveryWorker, WorkerSettings
from .students.mysql_student_repository import MySQLStudentRepository, MySQLSubjectRepository
from .unsubscribes.mysql_unsubscribe_repository import MySQLUnsubscribeRepository
from .unsubscribes.registry import UnsubscribeRegistry
from .users.mysql_user_repository import MySQLUserRepository


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    alert_config_provider: AlertConfigProvider
    unsubscribe_registry: UnsubscribeRegistry
    bounce_registry: BounceRegistry

    evaluator: AlertEvaluator
    scheduler: NotificationScheduler
    worker: DeliveryWorker

    alert_service: AlertService
    email_queue_service: EmailQueueService


def build_container(
    *,
    db_config: dict,
    smtp_config: Optional[dict] = None,
    alert_settings: Optional[dict] = None,
    notification_settings: Optional[dict] = None,
    transport: Optional[EmailTransport] = None,
) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))
    alert_settings = dict(alert_settings or {})
    notification_settings = dict(notification_settings or {})

    students_repo = MySQLStudentRepository(conn)
    subjects_repo = MySQLSubjectRepository(conn)
    users_repo = MySQLUserRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    alerts_repo = MySQLAlertRepository(conn)
    emails_repo = MySQLScheduledEmailRepository(conn)

    config_provider = AlertConfigProvider(MySQLAlertConfigRepository(conn), alert_config_from_settings(alert_settings))
    unsubscribe_registry = UnsubscribeRegistry(MySQLUnsubscribeRepository(conn))
    bounce_registry = BounceRegistry(MySQLBounceRepository(conn))
    recipient_filter = RecipientFilter(unsubscribe_registry, bounce_registry)

    scheduler = NotificationScheduler(
        alerts_repo,
        emails_repo,
        students_repo,
        subjects_repo,
        RecipientResolver(users_repo),
        recipient_filter,
        config_provider,
        debounce_seconds=int(notification_settings.get("debounce_seconds", 60)),
        max_retries=int(notification_settings.get("max_retries", 3)),
    )
    evaluator = AlertEvaluator(
        attendance_repo,
        students_repo,
        subjects_repo,
        alerts_repo,
        config_provider,
        on_created=scheduler.schedule_alert,
        window_days=int(alert_settings.get("evaluation_window_days", DEFAULT_EVALUATION_WINDOW_DAYS)),
    )
    worker = DeliveryWorker(
        emails_repo,
        alerts_repo,
        recipient_filter,
        transport or SMTPEmailTransport(smtp_config or {}),
        bounce_registry,
        settings=WorkerSettings.from_dict(notification_settings),
    )

    alert_service = AlertService(
        alerts_repo,
        evaluator,
        config_provider,
        students_repo,
        subjects_repo,
        users_repo,
        reschedule=scheduler.schedule_alert,
    )

    return Container(
        conn=conn,
        alert_config_provider=config_provider,
        unsubscribe_registry=unsubscribe_registry,
        bounce_registry=bounce_registry,
        evaluator=evaluator,
        scheduler=scheduler,
        worker=worker,
        alert_service=alert_service,
        email_queue_service=EmailQueueService(emails_repo),
    )


def build_container_from_settings(settings, *, transport: Optional[EmailTransport] = None) -> Container:
    """Wire everything from a settings module (config.development etc.)."""
    return build_container(
        db_config=dict(getattr(settings, "DB_CONFIG")),
        smtp_config=dict(getattr(settings, "SMTP_CONFIG", {}) or {}),
        alert_settings=dict(getattr(settings, "ALERT_SETTINGS", {}) or {}),
        notification_settings=dict(getattr(settings, "NOTIFICATION_SETTINGS", {}) or {}),
        transport=transport,
    )
