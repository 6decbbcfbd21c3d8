import os

from .config import alert_settings, db_config, notification_settings

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

DB_CONFIG = db_config("attendance_notifier_test")
# Tests never talk to a real mail server.
SMTP_CONFIG = {"host": "", "port": 25, "use_tls": False, "from_address": "test@localhost"}
ALERT_SETTINGS = alert_settings()
NOTIFICATION_SETTINGS = dict(notification_settings(), debounce_seconds=0)

AUTO_INIT_DB = False
