from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.nippo.dates import isoformat_or_none

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.nippo.modules.vehicles.models import Vehicle


def vehicle_to_dict(v: "Vehicle") -> dict:
    return {
        "id": v.id,
        "number_prefix": v.number_prefix,
        "number_class": v.number_class,
        "number_hiragana": v.number_hiragana,
        "number_numeric": v.number_numeric,
        "manufacturer": v.manufacturer,
        "brand": v.brand,
        "current_mileage": v.current_mileage,
        "created_at": isoformat_or_none(v.created_at),
    }


def assigned_vehicle_ids(s: "Session", driver_id: int) -> list[int]:
    from app.nippo.modules.vehicles.models import VehicleDriver

    rows = (
        s.query(VehicleDriver.vehicle_id)
        .filter(VehicleDriver.driver_id == driver_id)
        .order_by(VehicleDriver.vehicle_id.asc())
        .all()
    )
    return [r[0] for r in rows]


def list_vehicles(s: "Session", vehicle_ids: list[int] | None = None) -> list["Vehicle"]:
    """Vehicles ordered by manufacturer then brand; restricted to ``vehicle_ids`` when non-empty."""
    from app.nippo.modules.vehicles.models import Vehicle

    q = s.query(Vehicle)
    if vehicle_ids:
        q = q.filter(Vehicle.id.in_(vehicle_ids))
    return q.order_by(Vehicle.manufacturer.asc(), Vehicle.brand.asc(), Vehicle.id.asc()).all()


def get_vehicle_preference(s: "Session", driver_id: int) -> int | None:
    from app.nippo.modules.vehicles.models import DriverVehiclePreference

    pref = s.query(DriverVehiclePreference).filter(DriverVehiclePreference.driver_id == driver_id).one_or_none()
    return pref.vehicle_id if pref else None


def set_vehicle_preference(s: "Session", driver_id: int, vehicle_id: int) -> None:
    """Remember the driver's last selected vehicle. Raises ValueError for an unknown vehicle."""
    from app.nippo.modules.vehicles.models import DriverVehiclePreference, Vehicle

    if s.get(Vehicle, vehicle_id) is None:
        raise ValueError("Vehicle not found.")
    pref = s.query(DriverVehiclePreference).filter(DriverVehiclePreference.driver_id == driver_id).one_or_none()
    if pref is None:
        pref = DriverVehiclePreference(driver_id=driver_id, vehicle_id=vehicle_id)
        s.add(pref)
    pref.vehicle_id = vehicle_id
    pref.updated_at = datetime.utcnow()
