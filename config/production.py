import os

from .config import alert_settings, db_config, notification_settings, smtp_config

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DB_CONFIG = db_config("attendance_notifier")
SMTP_CONFIG = smtp_config()
ALERT_SETTINGS = alert_settings()
NOTIFICATION_SETTINGS = notification_settings()

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
