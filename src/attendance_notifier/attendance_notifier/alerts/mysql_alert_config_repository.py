from __future__ import annotations

from typing import Optional

from ..core.enums import RecipientRole
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json_list, fetchone, load_json_list
from .model import AlertConfig
from .repository import AlertConfigRepository

_CONFIG_ID = 1


class MySQLAlertConfigRepository(AlertConfigRepository):
    """Single-row store (config_id=1) for admin-edited alert settings."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self) -> Optional[AlertConfig]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT consecutive_absence_threshold, low_attendance_threshold, min_records_for_rate,
                       enable_consecutive_alerts, enable_low_attendance_alerts, email_recipients,
                       escalate_critical_to_staff, updated_by, updated_at
                FROM alert_config WHERE config_id=%s
                """,
                (_CONFIG_ID,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return AlertConfig(
                consecutive_absence_threshold=int(r["consecutive_absence_threshold"]),
                low_attendance_threshold=float(r["low_attendance_threshold"]),
                min_records_for_rate=int(r["min_records_for_rate"]),
                enable_consecutive_alerts=bool(r["enable_consecutive_alerts"]),
                enable_low_attendance_alerts=bool(r["enable_low_attendance_alerts"]),
                email_recipients=tuple(RecipientRole(v) for v in load_json_list(r.get("email_recipients"))),
                escalate_critical_to_staff=bool(r["escalate_critical_to_staff"]),
                updated_by=int(r["updated_by"]) if r.get("updated_by") is not None else None,
                updated_at=r.get("updated_at"),
            )

    def save(self, config: AlertConfig) -> AlertConfig:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO alert_config (
                    config_id, consecutive_absence_threshold, low_attendance_threshold, min_records_for_rate,
                    enable_consecutive_alerts, enable_low_attendance_alerts, email_recipients,
                    escalate_critical_to_staff, updated_by, updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE
                    consecutive_absence_threshold=VALUES(consecutive_absence_threshold),
                    low_attendance_threshold=VALUES(low_attendance_threshold),
                    min_records_for_rate=VALUES(min_records_for_rate),
                    enable_consecutive_alerts=VALUES(enable_consecutive_alerts),
                    enable_low_attendance_alerts=VALUES(enable_low_attendance_alerts),
                    email_recipients=VALUES(email_recipients),
                    escalate_critical_to_staff=VALUES(escalate_critical_to_staff),
                    updated_by=VALUES(updated_by),
                    updated_at=VALUES(updated_at)
                """,
                (
                    _CONFIG_ID,
                    int(config.consecutive_absence_threshold),
                    float(config.low_attendance_threshold),
                    int(config.min_records_for_rate),
                    1 if config.enable_consecutive_alerts else 0,
                    1 if config.enable_low_attendance_alerts else 0,
                    dump_json_list([r.value for r in config.email_recipients]),
                    1 if config.escalate_critical_to_staff else 0,
                    config.updated_by,
                    config.updated_at,
                ),
            )
        return config
