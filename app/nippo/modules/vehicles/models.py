from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.nippo.models import Base


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (
        Index("idx_vehicles_manufacturer_brand", "manufacturer", "brand"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Plate components, e.g. "品川" / "400" / "あ" / "12-34"
    number_prefix: Mapped[str | None] = mapped_column(String(32), nullable=True)
    number_class: Mapped[str | None] = mapped_column(String(8), nullable=True)
    number_hiragana: Mapped[str | None] = mapped_column(String(8), nullable=True)
    number_numeric: Mapped[str | None] = mapped_column(String(8), nullable=True)

    manufacturer: Mapped[str | None] = mapped_column(String(128), nullable=True)
    brand: Mapped[str | None] = mapped_column(String(128), nullable=True)
    current_mileage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)


class VehicleDriver(Base):
    """Restricts which vehicles a driver may pick. No rows for a driver means every vehicle."""

    __tablename__ = "vehicle_drivers"
    vehicle_id: Mapped[int] = mapped_column(ForeignKey("vehicles.id", ondelete="CASCADE"), primary_key=True)
    driver_id: Mapped[int] = mapped_column(ForeignKey("drivers.id", ondelete="CASCADE"), primary_key=True)


class DriverVehiclePreference(Base):
    __tablename__ = "driver_vehicle_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    driver_id: Mapped[int] = mapped_column(ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False, unique=True)
    vehicle_id: Mapped[int] = mapped_column(ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
