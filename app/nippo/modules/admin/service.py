from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from werkzeug.security import generate_password_hash

from app.nippo.audit import record_event
from app.nippo.constants import MONTHLY_CSV_HEADER, RATE_NEKOPOS, RATE_TAKUHAIBIN, ROLE_DRIVER
from app.nippo.dates import isoformat_or_none, month_bounds
from app.nippo.modules.reports.service import report_to_dict
from app.nippo.utils import display_name

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.nippo.auth import AuthUser
    from app.nippo.models import Driver


_OFFICE_CODE_RE = re.compile(r"^\d{6}$")
_DRIVER_CODE_RE = re.compile(r"^[A-Z]{3}\d{6}$")


@dataclass
class MonthlyEntry:
    driver_id: int
    driver_name: str
    total_takuhaibin_completed: int = 0
    total_takuhaibin_returned: int = 0
    total_nekopos_completed: int = 0
    total_nekopos_returned: int = 0
    work_days: int = 0
    estimated_payment: int = 0

    def to_dict(self) -> dict:
        return {
            "driver": {"id": self.driver_id, "name": self.driver_name},
            "totalTakuhaibinCompleted": self.total_takuhaibin_completed,
            "totalTakuhaibinReturned": self.total_takuhaibin_returned,
            "totalNekoposCompleted": self.total_nekopos_completed,
            "totalNekoposReturned": self.total_nekopos_returned,
            "workDays": self.work_days,
            "estimatedPayment": self.estimated_payment,
        }


# ---------- Daily ----------
def daily_overview(s: "Session", report_date: date) -> dict:
    """Every driver (by name) paired with their report for ``report_date`` or None."""
    from app.nippo.models import Driver
    from app.nippo.modules.reports.models import DailyReport

    drivers = s.query(Driver).order_by(Driver.name.asc(), Driver.id.asc()).all()
    reports = s.query(DailyReport).filter(DailyReport.report_date == report_date).all()
    by_driver = {r.driver_id: r for r in reports}

    entries = []
    for d in drivers:
        report = by_driver.get(d.id)
        entries.append({
            "driver": {
                "id": d.id,
                "name": d.name,
                "display_name": d.display_name,
                "label": display_name(d.name, d.display_name),
            },
            "report": report_to_dict(report) if report else None,
        })
    return {
        "date": report_date.isoformat(),
        "entries": entries,
        "driverCount": len(drivers),
        "reportCount": len(reports),
    }


# ---------- Monthly ----------
def load_rates(s: "Session") -> dict[str, int]:
    from app.nippo.modules.reports.models import RateMaster

    rates = {r.kind: r.rate_per_completed for r in s.query(RateMaster).all()}
    return {
        "takuhaibin": rates.get(RATE_TAKUHAIBIN, 0),
        "nekopos": rates.get(RATE_NEKOPOS, 0),
    }


def monthly_summary(s: "Session", month: str) -> tuple[dict[str, int], list[MonthlyEntry]]:
    """
    Per-driver totals for ``month`` (YYYY-MM). Payment is estimated from completed
    items only. Raises ValueError for a malformed month.
    """
    from app.nippo.models import Driver
    from app.nippo.modules.reports.models import DailyReport

    start, end = month_bounds(month)
    drivers = (
        s.query(Driver)
        .filter(Driver.role == ROLE_DRIVER)
        .order_by(Driver.name.asc(), Driver.id.asc())
        .all()
    )
    reports = (
        s.query(DailyReport)
        .filter(DailyReport.report_date >= start, DailyReport.report_date <= end)
        .all()
    )
    rates = load_rates(s)

    entries = {d.id: MonthlyEntry(driver_id=d.id, driver_name=d.name) for d in drivers}
    for r in reports:
        e = entries.get(r.driver_id)
        if e is None:
            continue
        e.total_takuhaibin_completed += r.takuhaibin_completed
        e.total_takuhaibin_returned += r.takuhaibin_returned
        e.total_nekopos_completed += r.nekopos_completed
        e.total_nekopos_returned += r.nekopos_returned
        e.work_days += 1

    for e in entries.values():
        e.estimated_payment = (
            e.total_takuhaibin_completed * rates["takuhaibin"]
            + e.total_nekopos_completed * rates["nekopos"]
        )
    return rates, list(entries.values())


def monthly_csv(entries: list[MonthlyEntry]) -> str:
    """CSV text with a leading BOM so Excel detects UTF-8."""
    out = io.StringIO()
    w = csv.writer(out, lineterminator="\n")
    w.writerow(MONTHLY_CSV_HEADER)
    for e in entries:
        w.writerow([
            e.driver_name,
            e.work_days,
            e.total_takuhaibin_completed,
            e.total_takuhaibin_returned,
            e.total_nekopos_completed,
            e.total_nekopos_returned,
            e.estimated_payment,
        ])
    return "\ufeff" + out.getvalue()


# ---------- Users ----------
def driver_to_dict(d: "Driver") -> dict:
    return {
        "id": d.id,
        "name": d.name,
        "role": d.role,
        "company_code": d.company_code,
        "office_code": d.office_code,
        "driver_code": d.driver_code,
        "created_at": isoformat_or_none(d.created_at),
    }


def list_company_drivers(s: "Session", company_code: str) -> list["Driver"]:
    from app.nippo.models import Driver

    return (
        s.query(Driver)
        .filter(Driver.company_code == company_code)
        .order_by(Driver.name.asc(), Driver.id.asc())
        .all()
    )


def validate_driver_payload(payload: dict, company_code: str) -> list[str]:
    """Validate driver creation payload. Returns list of errors."""
    errors = []
    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Name is required.")
    office_code = payload.get("officeCode")
    if not isinstance(office_code, str) or not _OFFICE_CODE_RE.match(office_code):
        errors.append("Office code must be 6 digits.")
    driver_code = payload.get("driverCode")
    if not isinstance(driver_code, str) or not _DRIVER_CODE_RE.match(driver_code):
        errors.append("Driver code must be 3 letters followed by 6 digits.")
    elif driver_code[:3] != company_code:
        errors.append("Driver code does not belong to your company.")
    requested_company = payload.get("companyCode")
    if requested_company not in (None, "") and requested_company != company_code:
        errors.append("Drivers can only be created in your own company.")
    return errors


def create_driver(s: "Session", payload: dict, actor: "AuthUser") -> "Driver":
    """
    Create a DRIVER account. The initial PIN is the numeric tail of the driver code.
    Raises ValueError when the driver code is already taken.
    """
    from app.nippo.models import Driver

    driver_code = payload["driverCode"].upper()
    if s.query(Driver.id).filter(Driver.driver_code == driver_code).first() is not None:
        raise ValueError("This driver code is already in use.")

    driver = Driver(
        name=payload["name"].strip(),
        role=ROLE_DRIVER,
        pin_hash=generate_password_hash(driver_code[3:]),
        company_code=actor.company_code,
        office_code=payload["officeCode"],
        driver_code=driver_code,
    )
    s.add(driver)
    s.flush()

    record_event(
        s,
        actor_id=actor.driver_id,
        actor_role=actor.role,
        action="driver.create",
        entity_type="Driver",
        entity_id=str(driver.id),
        metadata={"driver_code": driver_code, "office_code": driver.office_code},
    )
    return driver
