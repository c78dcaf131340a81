#!/usr/bin/env python3
"""
Inspect or clear the locally persisted ASTN session.

Reads the user snapshot and auth token from the session_data directory
without contacting the identity provider or the profile backend.
"""

import argparse
import json
import logging

from dotenv import load_dotenv

from astn_session.logging_config import setup_logging
from astn_session.storage.session import SessionStorage
from astn_session.utils.formatting import summarize_profile


def main(argv=None) -> int:
    """Main function to show the persisted session."""
    parser = argparse.ArgumentParser(description="Show or clear the persisted ASTN session")
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Remove the stored user snapshot and auth token",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full stored snapshot as JSON",
    )
    parser.add_argument(
        "--env-file",
        help="Path to .env file (for ASTN_DATA_DIR)",
    )

    args = parser.parse_args(argv)

    if args.env_file:
        load_dotenv(dotenv_path=args.env_file, override=True)
    else:
        load_dotenv()

    setup_logging(logging.WARNING, log_to_file=False)
    storage = SessionStorage()

    print("=" * 80)
    print("ASTN SESSION STATUS")
    print("=" * 80)
    print(f"Session data directory: {storage.data_dir.absolute()}")

    if args.clear:
        storage.clear()
        print("\nStored session cleared.")
        return 0

    user = storage.load_user()
    has_token = storage.load_token() is not None
    print(f"Auth token stored: {'yes' if has_token else 'no'}")

    if user is None:
        print("\nNo stored user. The app will start signed out.")
        return 0

    if args.json:
        print(json.dumps(user.to_snapshot(), indent=2))
        return 0

    print("\n" + "-" * 80)
    print("STORED USER")
    print("-" * 80)
    for key, value in summarize_profile(user).items():
        if isinstance(value, list):
            value = ", ".join(value) if value else "-"
        label = key.replace("_", " ").title()
        print(f"  {label:<14} {value if value is not None else '-'}")

    return 0


if __name__ == "__main__":
    exit(main())
