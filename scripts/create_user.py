"""Create a user account from the command line.

Usage:
  python scripts/create_user.py --name alice --email alice@example.com --password '...'

Prints the new user and a freshly issued access token (handy for curl).
NOTE: This is intended for local/dev.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from subscription_tracker.auth.service import register_user
from subscription_tracker.config import load_config
from subscription_tracker.db import init_db
from subscription_tracker.errors import AppError


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    try:
        user, token = register_user(cfg, name=args.name, email=args.email, password=args.password)
    except AppError as e:
        print(f"Could not create user: {e.message}", file=sys.stderr)
        sys.exit(1)

    print("Created user:")
    print(user)
    print("Access token:")
    print(token)


if __name__ == "__main__":
    main()
