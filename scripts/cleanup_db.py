"""
Cleanup utility for the generation store.

Features:
 - Back up the SQLite DB file before touching it.
 - Mode "expired" (default):
     * Delete generation_history rows older than HISTORY_RETENTION_DAYS.
 - Mode "all":
     * Delete all rows from test_case_documents and generation_history.
 - VACUUM the SQLite DB after modifications.

Usage examples:
  python scripts/cleanup_db.py --yes
  python scripts/cleanup_db.py --mode all --yes

Notes:
 - Uses testgen.config.settings for DATABASE_URL and the retention window.
 - Creates backups under ./data/backups/ with a timestamp.
"""

from __future__ import annotations

import argparse
import asyncio
import shutil
import sys
import time
from pathlib import Path
from typing import Optional

from sqlalchemy import text

# Ensure we can import the testgen package when running as a script
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from testgen.config.settings import settings  # noqa: E402
from testgen.core.database import SessionLocal, engine  # noqa: E402
from testgen.repositories.implementations.sql_generation_history_repository import (  # noqa: E402
    SQLGenerationHistoryRepository,
)


def parse_sqlite_path(database_url: str) -> Optional[Path]:
    """Extract SQLite file path from a SQLAlchemy database URL.

    Supports formats like:
      - sqlite:///./data/testgen.db
      - sqlite:////absolute/path/to/testgen.db
    """
    prefix = "sqlite:///"
    if not database_url.startswith(prefix):
        return None
    raw_path = database_url[len(prefix):]
    if raw_path == ":memory:":
        return None
    raw_path = raw_path.replace("\\", "/")
    p = Path(raw_path)
    if not p.is_absolute():
        p = (REPO_ROOT / p).resolve()
    return p


def backup_sqlite(db_path: Path, backups_dir: Path) -> Optional[Path]:
    if not db_path.exists():
        return None
    backups_dir.mkdir(parents=True, exist_ok=True)
    ts = time.strftime("%Y%m%d-%H%M%S")
    backup_path = backups_dir / f"testgen-{ts}.db"
    shutil.copy2(db_path, backup_path)
    return backup_path


def vacuum() -> None:
    if engine.dialect.name != "sqlite":
        return
    # VACUUM cannot run inside a transaction
    with engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
        conn.execute(text("VACUUM"))


def cleanup_expired(session) -> int:
    return asyncio.run(SQLGenerationHistoryRepository(session).purge_expired())


def cleanup_all(session) -> None:
    session.execute(text("DELETE FROM test_case_documents"))
    session.execute(text("DELETE FROM generation_history"))
    session.commit()


def main():
    parser = argparse.ArgumentParser(description="Clean up the test case generation store")
    parser.add_argument("--mode", choices=["expired", "all"], default="expired", help="Cleanup mode")
    parser.add_argument("--yes", action="store_true", help="Run without interactive confirmation")
    parser.add_argument("--no-backup", action="store_true", help="Skip creating backups")
    args = parser.parse_args()

    sqlite_path = parse_sqlite_path(settings.database_url)
    backups_dir = (REPO_ROOT / "data" / "backups").resolve()

    print("Cleanup plan:")
    print(f"  Mode: {args.mode}")
    print(f"  SQLite DB: {sqlite_path if sqlite_path else 'Non-SQLite or unknown'}")
    if args.mode == "expired":
        print(f"  Retention: {settings.history_retention_days} days")
    if not args.yes:
        resp = input("Proceed? (y/N): ").strip().lower()
        if resp not in {"y", "yes"}:
            print("Aborted.")
            return

    sqlite_backup = None
    if not args.no_backup and sqlite_path:
        sqlite_backup = backup_sqlite(sqlite_path, backups_dir)
        if sqlite_backup:
            print(f"SQLite backup: {sqlite_backup}")

    session = SessionLocal()
    try:
        if args.mode == "expired":
            deleted = cleanup_expired(session)
            print(f"Expired generation history removed: {deleted} row(s).")
        else:
            cleanup_all(session)
            print("All test case documents and generation history deleted (all mode).")
    finally:
        session.close()

    vacuum()
    print("Done.")
    if sqlite_backup:
        print(f"Backup saved under: {sqlite_backup}")


if __name__ == "__main__":
    main()
