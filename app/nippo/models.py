from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Driver(Base):
    """
    Every account is a driver row; administrators and viewers are drivers with another role.
    """

    __tablename__ = "drivers"
    __table_args__ = (
        Index("idx_drivers_company_role", "company_code", "role"),
        Index("idx_drivers_name", "name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default="DRIVER")  # DRIVER, ADMIN, ADMIN_VIEWER
    company_code: Mapped[str | None] = mapped_column(String(3), nullable=True)  # e.g. "AAA"

    # Codes printed on delivery paperwork
    office_code: Mapped[str | None] = mapped_column(String(6), nullable=True)
    driver_code: Mapped[str | None] = mapped_column(String(9), nullable=True, unique=True)  # e.g. "AAA123456"

    pin_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Contractor copy details
    postal_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    bank_no: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bank_holder: Mapped[str | None] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)


class AuditEvent(Base):
    """
    Append-only audit trail event.
    Keep this table intentionally generic; module-specific tables can refer to it by id if needed.
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("idx_audit_events_action", "action"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    actor_driver_id: Mapped[int | None] = mapped_column(ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True)
    actor_role: Mapped[str | None] = mapped_column(String(32), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "auth.login"
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "DailyReport"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # small JSON string
    client_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.nippo.modules.reports.models import DailyReport, RateMaster  # noqa: E402,F401
from app.nippo.modules.vehicles.models import DriverVehiclePreference, Vehicle, VehicleDriver  # noqa: E402,F401
