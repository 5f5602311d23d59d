#!/usr/bin/env python3
"""
Grant or revoke the admin role for a registered user.

New users always register with the ``user`` role.  Use this script to
promote an account to ``admin`` (or demote it again).  The database is
the one configured through ``DATABASE_URL`` unless ``--db`` is given.

Usage:
    python set_user_role.py --email admin@example.com --role admin
    python set_user_role.py --db ./geo_events.db --email someone@example.com --role user
"""

import argparse
import asyncio
import os
import sys

from geo_events_api.app.core.config import settings
from geo_events_api.app.core.db import get_database_path, init_db
from geo_events_api.app.core.errors import NotFoundError, ValidationError
from geo_events_api.app.services.user_service import UserService


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Set the role of a Geo Events API user.")
    ap.add_argument("--db", help="Path to the SQLite DB file (defaults to DATABASE_URL)")
    ap.add_argument("--email", required=True, help="E-mail of the user to update")
    ap.add_argument("--role", required=True, choices=["user", "admin"], help="New role")
    args = ap.parse_args(argv)

    if args.db:
        settings.database_url = os.path.abspath(args.db)
    if not os.path.exists(get_database_path()):
        print(f"[!] DB not found: {get_database_path()}", file=sys.stderr)
        return 1
    init_db()

    try:
        user = asyncio.run(UserService.set_role(args.email, args.role))
    except NotFoundError:
        print(f"[!] No user found with email: {args.email}", file=sys.stderr)
        return 2
    except ValidationError as exc:
        print(f"[!] {exc.errors[0]['message']}", file=sys.stderr)
        return 1
    print(f"[+] {user.email} now has role '{user.role}'")
    return 0


if __name__ == "__main__":
    sys.exit(main())
