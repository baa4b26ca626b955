from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.nippo.models import Base


class DailyReport(Base):
    __tablename__ = "daily_reports"
    __table_args__ = (
        UniqueConstraint("driver_id", "report_date", name="uq_daily_reports_driver_date"),
        Index("idx_daily_reports_date", "report_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    driver_id: Mapped[int] = mapped_column(ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False)
    report_date: Mapped[date] = mapped_column(Date, nullable=False)

    takuhaibin_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    takuhaibin_returned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    nekopos_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    nekopos_returned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)


class RateMaster(Base):
    """Payment per completed item, keyed by delivery kind."""

    __tablename__ = "rate_master"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kind: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)  # TAKUHAIBIN, NEKOPOS
    rate_per_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
