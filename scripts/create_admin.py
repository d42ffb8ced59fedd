"""
Bootstrap the first admin so the REST user endpoints and the Slack admin
tools become usable. Usage: python scripts/create_admin.py U0123ABCD "Jane Doe"
"""
import sys
import os
import argparse
import logging

# Ensure we can import pto_service modules
sys.path.append(os.getcwd())

from pto_service.database import init_db, session_scope
from pto_service.services.user_store import UserStore

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def create_admin_user(slack_id: str, name: str) -> None:
    init_db()
    with session_scope() as db:
        users = UserStore(db)
        user = users.get_by_external_id(slack_id)
        if user and user.is_admin:
            logger.warning(f"User '{slack_id}' is already an admin.")
            return
        if user:
            users.update(user.id, {"is_admin": True})
            logger.info(f"Promoted existing user '{slack_id}' to admin.")
            return
        users.create({"slack_id": slack_id, "name": name, "is_admin": True})
        logger.info(f"Admin user '{slack_id}' created successfully.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create or promote a PTO admin")
    parser.add_argument("slack_id", help="Slack member id, e.g. U0123ABCD")
    parser.add_argument("name", nargs="?", default=None, help="Display name")
    args = parser.parse_args()
    create_admin_user(args.slack_id, args.name or args.slack_id)
