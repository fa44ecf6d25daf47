"""
Seed script for the Gasy Hub database.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Use a seed file instead of the built-in demo data: python scripts/seed_db.py --file db_seed.json --apply

Behavior:
  - Seed data has two lists: "users" and "alerts" (alerts reference users by phone).
  - Uses DATABASE_URL from settings; tables are created if missing.
  - Goes through the services, so counters and the audit trail stay consistent.
  - Users whose phone is already registered are reused, not duplicated.
"""

import argparse
import json
import os

from gasy_hub.core.errors import GasyHubError
from gasy_hub.core.logging_config import configure_logging
from gasy_hub.db.database import initialize_database, new_session
from gasy_hub.services.alert_service import AlertService
from gasy_hub.services.user_service import UserService

DEMO_SEED = {
    "users": [
        {"phone": "+261 34 00 000 01", "name": "Rakoto", "neighborhood": "Analakely", "has_cin": True, "is_admin": True},
        {"phone": "+261 34 00 000 02", "name": "Rasoa", "neighborhood": "Isotry"},
        {"phone": "+261 34 00 000 03", "name": "Andry", "neighborhood": "Ambohijatovo"},
    ],
    "alerts": [
        {
            "author_phone": "+261 34 00 000 02",
            "reason": "Vol",
            "description": "Sac volé près du marché",
            "location": "Analakely",
            "urgency": "high",
            "latitude": -18.9056,
            "longitude": 47.5255,
        },
        {
            "author_phone": "+261 34 00 000 03",
            "reason": "Accident",
            "description": "Collision entre un taxi-be et une moto",
            "location": "Ambohijatovo",
            "urgency": "medium",
        },
    ],
}


def load_seed(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_to_db(seed: dict, apply: bool = False):
    users_by_phone = {}
    db = new_session() if apply else None
    try:
        for user_data in seed.get("users", []):
            print(f"Preparing user: {user_data.get('name')} ({user_data.get('phone')})")
            if not apply:
                continue
            users = UserService(db)
            user = users.get_user_by_phone(user_data["phone"])
            if user is None:
                user = users.create_user(**user_data)
                print(f"Created user: {user.id}")
            else:
                print(f"User exists: {user.id}")
            users_by_phone[user_data["phone"]] = user.id

        for alert_data in seed.get("alerts", []):
            alert_data = dict(alert_data)
            author_phone = alert_data.pop("author_phone")
            print(f"Preparing alert: {alert_data.get('reason')} @ {alert_data.get('location')}")
            if not apply:
                continue
            try:
                alert = AlertService(db).submit(author_id=users_by_phone.get(author_phone), **alert_data)
                print(f"Created alert: {alert.id}")
            except GasyHubError as e:
                print(f"Failed to create alert: {e.message}")
    finally:
        if db is not None:
            db.close()


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--file", help="JSON seed file (defaults to built-in demo data)")
    args = parser.parse_args()

    configure_logging()

    if args.file:
        if not os.path.exists(args.file):
            print(f"Seed file not found: {args.file}")
            return
        seed = load_seed(args.file)
    else:
        seed = DEMO_SEED

    if args.apply:
        initialize_database()

    write_to_db(seed, apply=args.apply)

    if args.apply:
        print("Seeding completed.")
    else:
        print("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()
