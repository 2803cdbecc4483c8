#!/usr/bin/env python3
"""
Script to inspect and revoke stored app sessions.

Safe to run while the API server is up: both share the sessions file
through an exclusive lock, and the server picks up a revocation on its
next lookup.

Usage:
    python scripts/sessions.py list
    python scripts/sessions.py revoke tk_abc123...
    python scripts/sessions.py revoke --all
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from kerjaya.auth import SessionStore, mask_token
from kerjaya.config import load_config
from kerjaya.errors import SessionStoreCorruptError


def cmd_list(store: SessionStore) -> int:
    tokens = store.tokens()
    if not tokens:
        print("No stored sessions.")
        return 0

    print(f"{len(tokens)} stored sessions:")
    for token in tokens:
        print(f"  {mask_token(token)}")
    return 0


def cmd_revoke(store: SessionStore, token: str, revoke_all: bool) -> int:
    if revoke_all:
        tokens = store.tokens()
        for t in tokens:
            store.remove(t)
        print(f"✅ Revoked {len(tokens)} sessions")
        return 0

    if not token:
        print("❌ Token is required (or use --all)")
        return 1

    if store.remove(token):
        print(f"✅ Revoked {mask_token(token)}")
    else:
        print(f"ℹ️  No session for {mask_token(token)}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Manage stored app sessions")
    parser.add_argument("--file", "-f", type=Path, help="Sessions file (default: SESSIONS_FILE)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List stored sessions (tokens masked)")

    revoke = sub.add_parser("revoke", help="Remove a session")
    revoke.add_argument("token", nargs="?", help="App token to remove")
    revoke.add_argument("--all", action="store_true", help="Remove every session")

    args = parser.parse_args()

    config = load_config()
    path = args.file or config.auth.sessions_file

    try:
        # Strict so a corrupt file is reported, not quarantined
        store = SessionStore(path, strict=True)
    except SessionStoreCorruptError as e:
        print(f"❌ Session file {path} is corrupt: {e}")
        sys.exit(1)

    if args.command == "list":
        sys.exit(cmd_list(store))
    sys.exit(cmd_revoke(store, args.token, args.all))


if __name__ == "__main__":
    main()
