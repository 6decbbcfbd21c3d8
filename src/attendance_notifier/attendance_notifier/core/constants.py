"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_CONSECUTIVE_ABSENCE_THRESHOLD = 3
DEFAULT_LOW_ATTENDANCE_THRESHOLD = 80.0
DEFAULT_MIN_RECORDS_FOR_RATE = 10
DEFAULT_EVALUATION_WINDOW_DAYS = 30

CONSECUTIVE_THRESHOLD_MIN = 1
CONSECUTIVE_THRESHOLD_MAX = 30

DEFAULT_MAX_RETRIES = 3
DEFAULT_DEBOUNCE_SECONDS = 60
DEFAULT_BACKOFF_BASE_SECONDS = 60
DEFAULT_BACKOFF_CAP_SECONDS = 3600
DEFAULT_BACKOFF_JITTER = 0.2
DEFAULT_POLL_INTERVAL_SECONDS = 60
DEFAULT_BATCH_SIZE = 10
DEFAULT_WORKER_POOL_SIZE = 4
DEFAULT_LEASE_TIMEOUT_SECONDS = 900

MAX_ALERT_MESSAGE_LENGTH = 500
MAX_EMAIL_SUBJECT_LENGTH = 200

ALERT_TAG_PREFIX = "alert:"

SKIP_DUPLICATE = "duplicate"
SKIP_NOT_TRIGGERED = "not-triggered"
SKIP_NO_ATTENDANCE = "no-attendance-data"
SKIP_DISABLED = "disabled"

REASON_NO_ELIGIBLE_RECIPIENTS = "no-eligible-recipients"
REASON_ALREADY_SCHEDULED = "already-scheduled"
REASON_NOT_PENDING = "not-pending"

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100
