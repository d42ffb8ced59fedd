"""
Load users from a JSON file: a list of objects with slack_id, name and the
optional country, manager_slack_id, is_admin and is_student fields.
Existing users are skipped; managers are linked in a second pass.
"""
import sys
import os
import json
import argparse
import logging

# Ensure we can import pto_service modules
sys.path.append(os.getcwd())

from pto_service.database import init_db, session_scope
from pto_service.services.user_store import UserStore

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def seed_users(path: str) -> None:
    with open(path, encoding="utf-8") as fh:
        rows = json.load(fh)

    init_db()
    with session_scope() as db:
        users = UserStore(db)
        for row in rows:
            if users.get_by_external_id(row["slack_id"]):
                logger.info(f"User {row['slack_id']} already exists. Skipping.")
                continue
            users.create(row)
            logger.info(f"Created {row['slack_id']}")

        for row in rows:
            manager_slack_id = row.get("manager_slack_id")
            if not manager_slack_id:
                continue
            user = users.get_by_external_id(row["slack_id"])
            manager = users.get_by_external_id(manager_slack_id)
            if not manager:
                logger.warning(f"Manager {manager_slack_id} for {row['slack_id']} not found")
                continue
            if user.manager_id != manager.id:
                users.update(user.id, {"manager_id": manager.id})


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed PTO users from JSON")
    parser.add_argument("path", help="Path to a JSON list of users")
    seed_users(parser.parse_args().path)
