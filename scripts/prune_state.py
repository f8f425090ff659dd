"""Scheduled job deleting expired auth handshake state.

Meant to be run by the host's scheduler (cron, systemd timer, Kubernetes
CronJob) every few minutes::

    python -m scripts.prune_state --db-path /var/lib/b2c_auth/auth.sqlite3

A storage failure exits non-zero so the scheduler records the failed run.
"""

from __future__ import annotations

import argparse
import logging
import sqlite3
import sys

from pydantic import ValidationError

from b2c_auth.clients.sqlite_store import SQLiteAuthStore
from b2c_auth.core.config import PruneJobSettings
from b2c_auth.core.logging import configure_logging
from b2c_auth.services.state_pruner import StateRecordPruner

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_STORAGE_ERROR = 5

logger = logging.getLogger("scripts.prune_state")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--db-path",
        help="SQLite database holding the auth tables (defaults to AUTH_DB_PATH).",
    )
    parser.add_argument(
        "--ttl-seconds",
        type=int,
        help="Age after which state records are removed (defaults to AUTH_STATE_TTL).",
    )
    parser.add_argument("--log-level", default=None)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    db_path = args.db_path
    ttl = args.ttl_seconds
    log_level = args.log_level
    if db_path is None or ttl is None or log_level is None:
        try:
            settings = PruneJobSettings()
        except ValidationError as exc:
            print(f"Invalid configuration:\n{exc}", file=sys.stderr)
            return EXIT_VALIDATION_ERROR
        db_path = db_path if db_path is not None else settings.db_path
        if ttl is None:
            ttl = settings.state_ttl_seconds
        log_level = log_level or settings.log_level
    configure_logging(log_level)

    try:
        pruner = StateRecordPruner(SQLiteAuthStore(db_path), ttl_seconds=ttl)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except sqlite3.Error:
        logger.exception("Failed to open auth state store at %s", db_path)
        return EXIT_STORAGE_ERROR

    try:
        deleted = pruner.prune()
    except sqlite3.Error:
        logger.exception("Failed to prune auth state in %s", db_path)
        return EXIT_STORAGE_ERROR

    print(f"Deleted {deleted} expired state record(s).")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
