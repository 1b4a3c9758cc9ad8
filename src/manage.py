"""InstaCares notifications database management CLI.

Creates and drops the notifications schema, and purges old records.

Usage:
    python src/manage.py setup-db          # Create all tables
    python src/manage.py drop-db           # Drop all tables
    python src/manage.py purge --days 365  # Delete finished notifications older than N days
"""

import argparse
import sys


def setup_database():
    from instacares_notify.domain import notify
    from instacares_notify.utils.db import setup_db

    print("Initializing notifications domain...")
    notify.init()
    print("Creating notifications database schema...")
    setup_db(notify)
    print("Done.")


def drop_database():
    from instacares_notify.domain import notify
    from instacares_notify.utils.db import drop_db

    print("Initializing notifications domain...")
    notify.init()
    print("Dropping notifications database schema...")
    drop_db(notify)
    print("Done.")


def purge(days):
    from instacares_notify.domain import notify
    from instacares_notify.notification.store import ProteanNotificationStore

    notify.init()
    purged = ProteanNotificationStore(notify).purge_expired(days)
    print(f"Purged {purged} notifications older than {days} days.")


def main():
    parser = argparse.ArgumentParser(description="InstaCares notifications database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    purge_parser = subparsers.add_parser("purge", help="Delete finished notifications past retention")
    purge_parser.add_argument("--days", type=int, default=365, help="Retention period in days (default: 365)")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "purge":
        purge(args.days)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
