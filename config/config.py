"""Settings blocks shared by the per-environment modules, read from env vars."""
import os


def env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def env_list(name: str, default: list) -> list:
    raw = os.environ.get(name)
    if not raw:
        return list(default)
    return [v.strip() for v in raw.split(",") if v.strip()]


def db_config(default_database: str) -> dict:
    return {
        "host": os.environ.get("DB_HOST", "localhost"),
        "port": int(os.environ.get("DB_PORT", "3306")),
        "user": os.environ.get("DB_USER", "root"),
        "password": os.environ.get("DB_PASSWORD", ""),
        "database": os.environ.get("DB_NAME", default_database),
    }


def smtp_config() -> dict:
    return {
        "host": os.environ.get("SMTP_HOST", ""),
        "port": int(os.environ.get("SMTP_PORT", "587")),
        "username": os.environ.get("SMTP_USERNAME", ""),
        "password": os.environ.get("SMTP_PASSWORD", ""),
        "from_address": os.environ.get("SMTP_FROM", "attendance@localhost"),
        "use_tls": env_bool("SMTP_USE_TLS", True),
        "timeout_seconds": float(os.environ.get("SMTP_TIMEOUT_SECONDS", "30")),
    }


def alert_settings() -> dict:
    return {
        "consecutive_absence_threshold": int(os.environ.get("ALERT_CONSECUTIVE_ABSENCE_THRESHOLD", "3")),
        "low_attendance_threshold": float(os.environ.get("ALERT_LOW_ATTENDANCE_THRESHOLD", "80")),
        "min_records_for_rate": int(os.environ.get("ALERT_MIN_RECORDS_FOR_RATE", "10")),
        "evaluation_window_days": int(os.environ.get("ALERT_EVALUATION_WINDOW_DAYS", "30")),
        "enable_consecutive_alerts": env_bool("ALERT_ENABLE_CONSECUTIVE", True),
        "enable_low_attendance_alerts": env_bool("ALERT_ENABLE_LOW_ATTENDANCE", True),
        "email_recipients": env_list("ALERT_EMAIL_RECIPIENTS", ["guardian"]),
        "escalate_critical_to_staff": env_bool("ALERT_ESCALATE_CRITICAL_TO_STAFF", True),
    }


def notification_settings() -> dict:
    return {
        "debounce_seconds": int(os.environ.get("NOTIFY_DEBOUNCE_SECONDS", "60")),
        "max_retries": int(os.environ.get("NOTIFY_MAX_RETRIES", "3")),
        "backoff_base_seconds": float(os.environ.get("NOTIFY_BACKOFF_BASE_SECONDS", "60")),
        "backoff_cap_seconds": float(os.environ.get("NOTIFY_BACKOFF_CAP_SECONDS", "3600")),
        "backoff_jitter": float(os.environ.get("NOTIFY_BACKOFF_JITTER", "0.2")),
        "poll_interval_seconds": float(os.environ.get("NOTIFY_POLL_INTERVAL_SECONDS", "60")),
        "batch_size": int(os.environ.get("NOTIFY_BATCH_SIZE", "10")),
        "worker_pool_size": int(os.environ.get("NOTIFY_WORKER_POOL_SIZE", "4")),
        "lease_timeout_seconds": float(os.environ.get("NOTIFY_LEASE_TIMEOUT_SECONDS", "900")),
    }
