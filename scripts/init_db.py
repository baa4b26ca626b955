"""
Seed rate master rows and the company administrator account (idempotent).

Usage:
  python scripts/init_db.py [--database-url URL]
"""
import argparse
import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.nippo.constants import RATE_NEKOPOS, RATE_TAKUHAIBIN, ROLE_ADMIN  # noqa: E402
from app.nippo.models import Driver  # noqa: E402
from app.nippo.modules.reports.models import RateMaster  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    return int(raw) if raw else default


def seed_only(*, database_url: str | None = None, create_schema: bool = False) -> None:
    """
    Seed rates and the admin account in an idempotent way.
    Does NOT overwrite an existing admin's PIN or existing rates.
    """
    company_code = (os.environ.get("ADMIN_COMPANY_CODE") or "AAA").strip().upper()
    admin_pin = os.environ.get("ADMIN_PIN") or "change-me"
    admin_name = (os.environ.get("ADMIN_NAME") or "管理者").strip()

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///nippo.db").strip()

    with script_session(db_url, create_schema=create_schema) as s:
        def ensure_rate(kind: str, default: int) -> RateMaster:
            r = s.query(RateMaster).filter(RateMaster.kind == kind).one_or_none()
            if not r:
                r = RateMaster(kind=kind, rate_per_completed=default)
                s.add(r)
            return r

        ensure_rate(RATE_TAKUHAIBIN, _env_int("RATE_TAKUHAIBIN", 0))
        ensure_rate(RATE_NEKOPOS, _env_int("RATE_NEKOPOS", 0))

        admin = (
            s.query(Driver)
            .filter(Driver.company_code == company_code, Driver.role == ROLE_ADMIN)
            .order_by(Driver.id.asc())
            .first()
        )
        if not admin:
            if admin_pin == "change-me":
                print("WARNING: ADMIN_PIN not set; admin account created with the default PIN.", flush=True)
            s.add(
                Driver(
                    name=admin_name,
                    role=ROLE_ADMIN,
                    company_code=company_code,
                    pin_hash=generate_password_hash(admin_pin),
                )
            )
            print(f"Created admin account for company {company_code}.", flush=True)
        else:
            print(f"Admin account for company {company_code} already exists (id={admin.id}); PIN left unchanged.", flush=True)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed rate master and admin account.")
    parser.add_argument("--database-url", default=None, help="Defaults to $DATABASE_URL.")
    parser.add_argument("--create-schema", action="store_true", help="Create missing tables without alembic (local dev).")
    args = parser.parse_args()
    seed_only(database_url=args.database_url, create_schema=args.create_schema)


if __name__ == "__main__":
    main()
