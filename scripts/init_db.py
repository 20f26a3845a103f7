#!/usr/bin/env python3
"""Create the course tables and manage administrator roles."""

import argparse
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from coursebook.core.auth import get_user_role, set_user_role
from coursebook.models.database import DatabaseManager


def init_tables():
    db = DatabaseManager()
    db.connect()
    try:
        db.initialize_schema()
    finally:
        db.close()
    print("Tables created successfully!")


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--grant-admin", metavar="USER_ID", help="give USER_ID the admin role")
    parser.add_argument("--revoke-admin", metavar="USER_ID", help="reset USER_ID to the user role")
    args = parser.parse_args(argv)

    init_tables()

    if args.grant_admin:
        set_user_role(args.grant_admin, "admin")
        print(f"{args.grant_admin}: {get_user_role(args.grant_admin)}")
    if args.revoke_admin:
        set_user_role(args.revoke_admin, "user")
        print(f"{args.revoke_admin}: {get_user_role(args.revoke_admin)}")


if __name__ == "__main__":
    main()
