"""Run the email delivery worker until SIGINT/SIGTERM."""
from __future__ import annotations

import argparse
import importlib
import signal
import sys
import threading
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.attendance_notifier.attendance_notifier.common.app_logger import setup_logging
from src.attendance_notifier.attendance_notifier.container import build_container_from_settings


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--once", action="store_true", help="run a single poll cycle and exit")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logger = setup_logging(getattr(settings, "LOG_LEVEL", None))
    worker = build_container_from_settings(settings).worker

    if args.once:
        logger.info("Worker summary: %s", worker.run_once())
        return 0

    stop = threading.Event()

    def _stop(signum, _frame):
        logger.info("Received signal %s, stopping after the current cycle", signum)
        stop.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)
    worker.run_forever(stop)
    return 0


if __name__ == "__main__":
    sys.exit(main())
