from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import TYPE_CHECKING

from werkzeug.security import generate_password_hash

from app.nippo.audit import record_event
from app.nippo.constants import REPORT_COUNT_FIELDS
from app.nippo.dates import isoformat_or_none

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.nippo.models import Driver
    from app.nippo.modules.reports.models import DailyReport


_PIN_RE = re.compile(r"^\d{6}$")

# JSON body key -> column
_COUNT_KEYS = {
    "takuhaibinCompleted": "takuhaibin_completed",
    "takuhaibinReturned": "takuhaibin_returned",
    "nekoposCompleted": "nekopos_completed",
    "nekoposReturned": "nekopos_returned",
}

_PROFILE_FIELDS = {
    "name": "name",
    "officeCode": "office_code",
    "driverCode": "driver_code",
    "displayName": "display_name",
    "postalCode": "postal_code",
    "address": "address",
    "phone": "phone",
    "bankName": "bank_name",
    "bankNo": "bank_no",
    "bankHolder": "bank_holder",
}


def report_to_dict(r: "DailyReport") -> dict:
    return {
        "id": r.id,
        "driver_id": r.driver_id,
        "report_date": isoformat_or_none(r.report_date),
        "takuhaibin_completed": r.takuhaibin_completed,
        "takuhaibin_returned": r.takuhaibin_returned,
        "nekopos_completed": r.nekopos_completed,
        "nekopos_returned": r.nekopos_returned,
        "submitted_at": isoformat_or_none(r.submitted_at),
    }


def profile_to_dict(driver: "Driver") -> dict:
    return {key: getattr(driver, attr) or "" for key, attr in _PROFILE_FIELDS.items()}


def list_driver_reports(s: "Session", driver_id: int, limit: int) -> list["DailyReport"]:
    """A driver's own reports, newest report_date first."""
    from app.nippo.modules.reports.models import DailyReport

    return (
        s.query(DailyReport)
        .filter(DailyReport.driver_id == driver_id)
        .order_by(DailyReport.report_date.desc())
        .limit(limit)
        .all()
    )


def get_driver(s: "Session", driver_id: int) -> "Driver | None":
    from app.nippo.models import Driver

    return s.get(Driver, driver_id)


def validate_pin_change(body: dict) -> str | None:
    """Returns an error message, or None when the PIN change is acceptable."""
    new_pin = body.get("newPin")
    confirm_pin = body.get("confirmPin")
    if not isinstance(new_pin, str) or not _PIN_RE.match(new_pin):
        return "New PIN must be 6 digits."
    if new_pin != confirm_pin:
        return "New PIN and confirmation do not match."
    return None


def change_pin(s: "Session", driver: "Driver", new_pin: str) -> None:
    driver.pin_hash = generate_password_hash(new_pin)
    record_event(
        s,
        actor_id=driver.id,
        actor_role=driver.role,
        action="driver.pin_change",
        entity_type="Driver",
        entity_id=str(driver.id),
    )


def _parse_count(raw) -> int | None:
    """
    Absent, empty or non-numeric values count as 0. Returns None for negative or
    fractional values.
    """
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        value: float = raw
    else:
        try:
            value = float(str(raw).strip())
        except ValueError:
            return 0
        if math.isnan(value):
            return 0
    if value < 0 or not math.isfinite(value) or value != int(value):
        return None
    return int(value)


def parse_report_counts(body: dict) -> tuple[dict[str, int], str | None]:
    counts: dict[str, int] = {}
    for key, column in _COUNT_KEYS.items():
        value = _parse_count(body.get(key))
        if value is None:
            return {}, "Values must be non-negative integers"
        counts[column] = value
    return counts, None


def submit_daily_report(
    s: "Session",
    driver: "Driver",
    counts: dict[str, int],
    report_date: date,
) -> "DailyReport":
    """Create or overwrite the driver's report for ``report_date``."""
    from app.nippo.modules.reports.models import DailyReport

    report = (
        s.query(DailyReport)
        .filter(DailyReport.driver_id == driver.id, DailyReport.report_date == report_date)
        .one_or_none()
    )
    created = report is None
    if created:
        report = DailyReport(driver_id=driver.id, report_date=report_date)
        s.add(report)
    for column in REPORT_COUNT_FIELDS:
        setattr(report, column, counts.get(column, 0))
    report.submitted_at = datetime.utcnow()
    s.flush()

    record_event(
        s,
        actor_id=driver.id,
        actor_role=driver.role,
        action="daily_report.create" if created else "daily_report.update",
        entity_type="DailyReport",
        entity_id=str(report.id),
        metadata={"report_date": report_date.isoformat(), **counts},
    )
    return report
