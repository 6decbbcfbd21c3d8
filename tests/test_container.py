from __future__ import annotations

from types import SimpleNamespace

from src.attendance_notifier.attendance_notifier.container import build_container_from_settings
from src.attendance_notifier.attendance_notifier.notifications.transport import SMTPEmailTransport
from tests.fakes import ScriptedTransport


def _settings(**overrides):
    base = dict(
        DB_CONFIG={"host": "db", "port": 3307, "user": "app", "password": "pw", "database": "attendance"},
        SMTP_CONFIG={"host": "smtp.test"},
        ALERT_SETTINGS={"consecutive_absence_threshold": 4, "email_recipients": ["guardian", "student"]},
        NOTIFICATION_SETTINGS={"batch_size": 25, "worker_pool_size": 2, "backoff_jitter": 0},
    )
    base.update(overrides)
    return SimpleNamespace(**base)


def test_container_is_wired_from_settings_without_connecting():
    container = build_container_from_settings(_settings())

    assert container.conn.config.port == 3307
    assert container.alert_config_provider.defaults.consecutive_absence_threshold == 4
    assert container.worker.settings.batch_size == 25
    assert container.worker.settings.pool_size == 2
    assert container.worker.settings.backoff.jitter == 0
    assert isinstance(container.worker._transport, SMTPEmailTransport)


def test_transport_can_be_injected():
    transport = ScriptedTransport()
    container = build_container_from_settings(_settings(SMTP_CONFIG=None), transport=transport)
    assert container.worker._transport is transport
