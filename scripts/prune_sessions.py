"""
Delete expired sessions.

Validation already removes an expired session when its cookie is presented;
this script sweeps the ones nobody comes back for. Safe to run from cron.
"""

from __future__ import annotations

import argparse
import logging

from authcore.core.database import SessionLocal
from authcore.dependencies.auth import build_session_manager

logger = logging.getLogger("prune_sessions")


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete expired auth sessions.")
    parser.add_argument("--verbose", action="store_true", help="Log at INFO level.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    with SessionLocal() as db:
        deleted = build_session_manager(db).delete_expired()

    print(f"Done. Deleted {deleted} expired session(s).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
