"""
In-process application events.

Receivers run synchronously inside the sending request; publish() logs and
swallows receiver failures so a notification problem never fails a submission.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from blinker import Namespace

logger = logging.getLogger(__name__)

_signals = Namespace()

daily_report_submitted = _signals.signal("daily-report-submitted")


@dataclass(frozen=True)
class DailyReportSubmitted:
    driver_id: int
    driver_name: str
    report_date: str
    takuhaibin_completed: int
    takuhaibin_returned: int
    nekopos_completed: int
    nekopos_returned: int
    submitted_at: str

    def to_dict(self) -> dict:
        return asdict(self)


def publish_daily_report_submitted(sender, payload: DailyReportSubmitted) -> None:
    try:
        daily_report_submitted.send(sender, payload=payload)
    except Exception:
        logger.exception(
            "[events] daily_report_submitted receiver failed (driver_id=%s date=%s)",
            payload.driver_id,
            payload.report_date,
        )


@daily_report_submitted.connect
def _log_daily_report(sender, payload: DailyReportSubmitted, **_kwargs) -> None:
    logger.info(
        "[events] daily_report_submitted driver=%s date=%s takuhaibin=%s/%s nekopos=%s/%s",
        payload.driver_name,
        payload.report_date,
        payload.takuhaibin_completed,
        payload.takuhaibin_returned,
        payload.nekopos_completed,
        payload.nekopos_returned,
    )
