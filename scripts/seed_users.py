#!/usr/bin/env python3
"""
Seed coach and client profiles into the workout booking database.

Reads a JSON array of camelCase user records (see data/users.json) and
upserts them by email.

Usage:
    python scripts/seed_users.py
    python scripts/seed_users.py --file data/users.json --dry-run
    python scripts/seed_users.py --print-tokens

Requires:
    - the package installed (pip install -e .)
    - DATABASE_URL in .env or the environment (defaults to a local SQLite file)
"""

import json
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from workout_booking.config.settings import get_settings  # noqa: E402
from workout_booking.infrastructure.auth.tokens import create_access_token  # noqa: E402
from workout_booking.infrastructure.database.client import (  # noqa: E402
    create_database_engine,
    create_session_factory,
    init_database,
    session_scope,
)
from workout_booking.infrastructure.database.seed import (  # noqa: E402
    SeedRecordError,
    profile_from_record,
    seed_users,
)


def main():
    import argparse
    from datetime import timedelta

    parser = argparse.ArgumentParser(description='Seed user profiles into the booking database')
    parser.add_argument('--file', default='data/users.json', help='JSON file with user records')
    parser.add_argument('--dry-run', action='store_true', help='Validate only, don\'t insert')
    parser.add_argument('--print-tokens', action='store_true',
                        help='Print a 24h bearer token per user (development only)')
    args = parser.parse_args()

    filepath = args.file
    if not os.path.exists(filepath):
        # Try relative to the repository root
        filepath = Path(__file__).parent.parent / args.file

    if not os.path.exists(filepath):
        print(f"ERROR: Cannot find {args.file}")
        sys.exit(1)

    with open(filepath, 'r', encoding='utf-8') as f:
        records = json.load(f)

    print(f"Loaded {len(records)} records from: {filepath}")

    if args.dry_run:
        print("\n=== DRY RUN - No data will be inserted ===\n")
        errors = 0
        for record in records:
            try:
                profile = profile_from_record(record)
                print(f"[OK] {profile.role.value:6} {profile.email} "
                      f"({len(profile.available_time_slots)} slots)")
            except SeedRecordError as e:
                errors += 1
                print(f"[ERR] {record.get('email', '<no email>')}: {e}")
        sys.exit(0 if errors == 0 else 1)

    settings = get_settings()
    engine = create_database_engine(settings.effective_database_url, echo=settings.database_echo)
    init_database(engine)
    factory = create_session_factory(engine)

    try:
        with session_scope(factory) as session:
            profiles = seed_users(session, records)
    except SeedRecordError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print("\n=== Seed Complete ===")
    print(f"Users: {len(profiles)}")
    print(f"Coaches: {sum(1 for p in profiles if p.is_coach)}")

    if args.print_tokens:
        print("\nBearer tokens (valid 24h):")
        for profile in profiles:
            token = create_access_token(
                profile.id,
                profile.role,
                secret_key=settings.auth_secret_key,
                algorithm=settings.auth_algorithm,
                expires_in=timedelta(hours=24),
            )
            print(f"  {profile.email}: {token}")


if __name__ == '__main__':
    main()
