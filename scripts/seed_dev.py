#!/usr/bin/env python
"""Seed the development database with the DM contact directory.

Inserts every configured directory contact (DM_DIRECTORY_CONTACTS, or the
built-in launch-labs / growth-mate / dm-bot set) that is not yet present.

Constraints:
- Refuses to run in staging or prod (MINIX_ENV check)
- Idempotent: existing users are left untouched
- Never runs automatically (manual invocation only)

Usage:
    DATABASE_URL=... python scripts/seed_dev.py
"""

import os
import sys


def main():
    # 1. Environment check (hard fail in staging/prod)
    minix_env = os.getenv("MINIX_ENV", "local")
    if minix_env not in ("local", "test"):
        print(f"ERROR: seed_dev.py refuses to run in MINIX_ENV={minix_env}")
        sys.exit(1)

    # 2. Check DATABASE_URL
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL environment variable must be set")
        sys.exit(1)

    from minix.config import get_settings
    from minix.db.session import get_session_factory
    from minix.services.directory import ensure_directory

    settings = get_settings()
    db = get_session_factory()()
    try:
        inserted = ensure_directory(db, settings.dm_directory_contacts)
    finally:
        db.close()

    # 3. Report
    db_display = database_url.split("@")[1] if "@" in database_url else database_url
    print(f"Database: {db_display}")
    print(f"MINIX_ENV: {minix_env}")
    print()
    for contact in settings.dm_directory_contacts:
        print(f"• {contact.username} ({contact.id})")
    print()
    print(f"Inserted {inserted} of {len(settings.dm_directory_contacts)} contacts.")


if __name__ == "__main__":
    main()
