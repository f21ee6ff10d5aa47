"""
Minimal forward-only SQL migrations.

    python -m folio_auth.infrastructure.db.migrate up
    python -m folio_auth.infrastructure.db.migrate status
    python -m folio_auth.infrastructure.db.migrate new add_something
"""
from __future__ import annotations

import argparse
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import psycopg

from folio_auth.settings import get_settings

MIGRATIONS_DIR = Path(os.environ.get("MIGRATIONS_DIR", "migrations"))
SCHEMA_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
  version    text PRIMARY KEY,
  applied_at timestamptz NOT NULL DEFAULT now()
);
"""


def log(msg: str) -> None:
    print(msg, flush=True)


def list_migrations(directory: Path) -> list[Path]:
    if not directory.exists():
        raise FileNotFoundError(f"migrations dir not found: {directory}")
    return sorted(directory.glob("*.sql"))


def applied_versions(conn: psycopg.Connection) -> dict[str, datetime]:
    with conn.cursor() as cur:
        cur.execute(SCHEMA_TABLE_SQL)
        cur.execute("SELECT version, applied_at FROM schema_migrations ORDER BY version;")
        rows = cur.fetchall()
    conn.commit()
    return {r[0]: r[1] for r in rows}


def pending(directory: Path, done: dict[str, datetime]) -> list[Path]:
    return [p for p in list_migrations(directory) if p.stem not in done]


def apply_one(conn: psycopg.Connection, path: Path) -> None:
    version = path.stem
    log(f"==> applying {version}")
    with conn.cursor() as cur:
        cur.execute(path.read_text(encoding="utf-8"))
        cur.execute(
            "INSERT INTO schema_migrations (version, applied_at) VALUES (%s, now());",
            (version,),
        )
    conn.commit()
    log(f"applied {version}")


def cmd_up(dsn: str, directory: Path) -> int:
    with psycopg.connect(dsn, autocommit=False) as conn:
        to_run = pending(directory, applied_versions(conn))
        if not to_run:
            log("No pending migrations.")
            return 0
        for path in to_run:
            try:
                apply_one(conn, path)
            except psycopg.Error as e:
                conn.rollback()
                print(f"failed {path.stem}: {e}", file=sys.stderr)
                return 1
    return 0


def cmd_status(dsn: str, directory: Path) -> int:
    with psycopg.connect(dsn) as conn:
        done = applied_versions(conn)
    log("=== Applied ===")
    for version, at in done.items():
        log(f"{version} @ {at.isoformat()}")
    log("=== Pending ===")
    for path in pending(directory, done):
        log(path.stem)
    return 0


def cmd_new(directory: Path, name: str) -> int:
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M")
    path = directory / f"{ts}_{name}.sql"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("-- write your SQL here\n", encoding="utf-8")
    log(str(path))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m folio_auth.infrastructure.db.migrate")
    parser.add_argument("--dir", type=Path, default=MIGRATIONS_DIR)
    sub = parser.add_subparsers(dest="cmd", required=True)
    sub.add_parser("up")
    sub.add_parser("status")
    new = sub.add_parser("new")
    new.add_argument("name")
    args = parser.parse_args(argv)

    try:
        if args.cmd == "new":
            return cmd_new(args.dir, args.name)
        dsn = get_settings().database_url
        if args.cmd == "up":
            return cmd_up(dsn, args.dir)
        return cmd_status(dsn, args.dir)
    except FileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
