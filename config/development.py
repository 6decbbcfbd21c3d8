import os

from .config import alert_settings, db_config, notification_settings, smtp_config

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

DB_CONFIG = db_config("attendance_notifier")
SMTP_CONFIG = smtp_config()
ALERT_SETTINGS = alert_settings()
NOTIFICATION_SETTINGS = notification_settings()

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
