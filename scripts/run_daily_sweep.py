"""
Send the "out of office starting today" notifications. Safe to re-run on the
same day. Meant for cron, e.g. `0 8 * * 1-5 python scripts/run_daily_sweep.py`.
"""
import sys
import os
import argparse
import logging
from datetime import date

# Ensure we can import pto_service modules
sys.path.append(os.getcwd())

from slack_sdk import WebClient

from pto_service.core.config import settings
from pto_service.core.logging import setup_logging
from pto_service.database import init_db, session_scope
from pto_service.services.daily_sweep import run_daily_sweep
from pto_service.services.notification_service import Notifier

setup_logging()
logger = logging.getLogger(__name__)


def build_notifier() -> Notifier:
    if settings.slack.enabled:
        from pto_service.slack.app import SlackNotifier
        return SlackNotifier(WebClient(token=settings.slack.bot_token))
    logger.warning("Slack is not configured; notifications are recorded but only logged")
    return Notifier()


def main(today: date) -> int:
    init_db()
    with session_scope() as db:
        return run_daily_sweep(db, today, build_notifier())


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the daily PTO notification sweep")
    parser.add_argument("--date", type=date.fromisoformat, default=date.today(), help="YYYY-MM-DD (default: today)")
    args = parser.parse_args()
    sent = main(args.date)
    logger.info(f"Daily sweep sent {sent} notification(s)")
