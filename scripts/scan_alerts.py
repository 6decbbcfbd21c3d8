"""Evaluate every active student and queue alert emails.

Meant for a daily cron entry. Also re-queues alerts whose scheduling failed.
"""
from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.attendance_notifier.attendance_notifier.attendance.model import AttendanceWindow
from src.attendance_notifier.attendance_notifier.common.app_logger import setup_logging
from src.attendance_notifier.attendance_notifier.common.datetime_utils import parse_iso_date
from src.attendance_notifier.attendance_notifier.container import build_container_from_settings


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--start", help="window start (YYYY-MM-DD)")
    parser.add_argument("--end", help="window end (YYYY-MM-DD)")
    parser.add_argument("--reschedule-limit", type=int, default=100)
    args = parser.parse_args(argv)
    if bool(args.start) != bool(args.end):
        parser.error("--start and --end must be given together")

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logger = setup_logging(getattr(settings, "LOG_LEVEL", None))
    container = build_container_from_settings(settings)

    window = None
    if args.start:
        window = AttendanceWindow(start=parse_iso_date(args.start), end=parse_iso_date(args.end))

    report = container.alert_service.scan(window)
    rescheduled = container.alert_service.reschedule_unnotified(args.reschedule_limit)
    logger.info("Scan report: %s; rescheduled=%d", report, rescheduled)
    return 1 if report.errors else 0


if __name__ == "__main__":
    sys.exit(main())
