"""
Release step: alembic upgrade head, then the idempotent seed.

Usage:
  python scripts/release.py [--no-seed]
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def resolve_database_url(database_url: str | None = None) -> str:
    db_url = (database_url or os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is required for a release.")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to release against sqlite in production; set DATABASE_URL to Postgres.")
    return db_url


def run_release(database_url: str | None = None, *, seed: bool = True) -> None:
    db_url = resolve_database_url(database_url)

    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    print("Upgrading schema to head...", flush=True)
    command.upgrade(cfg, "head")

    if seed:
        from scripts.init_db import seed_only

        seed_only(database_url=db_url)
    print("Release complete.", flush=True)


def main() -> None:
    parser = argparse.ArgumentParser(description="Migrate the schema and seed rates/admin.")
    parser.add_argument("--no-seed", action="store_true", help="Only run migrations.")
    args = parser.parse_args()
    run_release(seed=not args.no_seed)


if __name__ == "__main__":
    main()
