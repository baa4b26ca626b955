from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from app.nippo.auth import AuthUser
from app.nippo.constants import DEFAULT_REPORT_LIMIT, MAX_DB_ID, MAX_REPORT_LIMIT, ROLE_DRIVER
from app.nippo.dates import parse_date, today_jst
from app.nippo.db import db_session
from app.nippo.events import DailyReportSubmitted, publish_daily_report_submitted
from app.nippo.modules.reports.service import (
    change_pin,
    get_driver,
    list_driver_reports,
    parse_report_counts,
    profile_to_dict,
    report_to_dict,
    submit_daily_report,
    validate_pin_change,
)
from app.nippo.modules.vehicles.service import (
    assigned_vehicle_ids,
    get_vehicle_preference,
    list_vehicles,
    set_vehicle_preference,
    vehicle_to_dict,
)
from app.nippo.rbac import require_role
from app.nippo.utils import parse_positive_int

bp = Blueprint("reports", __name__)


def _current_user() -> AuthUser:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _db_error(what: str):
    current_app.logger.exception("%s failed (request_id=%s)", what, getattr(g, "request_id", None))
    return jsonify({"error": "DB error"}), 500


# ---------- Own reports ----------
@bp.get("/reports/me")
@require_role(ROLE_DRIVER)
def my_reports():
    u = _current_user()
    limit = parse_positive_int(request.args.get("limit"), DEFAULT_REPORT_LIMIT, MAX_REPORT_LIMIT)
    try:
        reports = list_driver_reports(db_session(), u.driver_id, limit)
    except SQLAlchemyError:
        return _db_error("my_reports")
    return jsonify({"reports": [report_to_dict(r) for r in reports]})


@bp.post("/reports")
@require_role(ROLE_DRIVER)
def submit_report():
    u = _current_user()
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"error": "Invalid JSON"}), 400

    counts, error = parse_report_counts(body)
    if error:
        return jsonify({"error": error}), 400

    report_date = parse_date(today_jst(tz_name=current_app.config.get("REPORT_TIMEZONE", "Asia/Tokyo")))
    s = db_session()
    try:
        driver = get_driver(s, u.driver_id)
        if driver is None:
            return jsonify({"error": "Driver not found"}), 404
        report = submit_daily_report(s, driver, counts, report_date)
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Report submit failed (driver_id=%s request_id=%s)", u.driver_id, getattr(g, "request_id", None))
        return jsonify({"error": "Internal server error"}), 500

    publish_daily_report_submitted(
        current_app._get_current_object(),
        DailyReportSubmitted(
            driver_id=driver.id,
            driver_name=driver.name or "Unknown",
            report_date=report.report_date.isoformat(),
            takuhaibin_completed=report.takuhaibin_completed,
            takuhaibin_returned=report.takuhaibin_returned,
            nekopos_completed=report.nekopos_completed,
            nekopos_returned=report.nekopos_returned,
            submitted_at=report.submitted_at.isoformat(),
        ),
    )
    return jsonify({"ok": True, "report": report_to_dict(report)})


# ---------- Profile ----------
@bp.get("/reports/profile")
@require_role(ROLE_DRIVER)
def profile_get():
    u = _current_user()
    try:
        driver = get_driver(db_session(), u.driver_id)
    except SQLAlchemyError:
        return _db_error("profile_get")
    if driver is None:
        return jsonify({"error": "Driver not found"}), 404
    return jsonify(profile_to_dict(driver))


@bp.patch("/reports/profile")
@require_role(ROLE_DRIVER)
def profile_patch():
    u = _current_user()
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"error": "Invalid JSON"}), 400

    error = validate_pin_change(body)
    if error:
        return jsonify({"error": error}), 400

    s = db_session()
    try:
        driver = get_driver(s, u.driver_id)
        if driver is None:
            return jsonify({"error": "Driver not found"}), 404
        change_pin(s, driver, body["newPin"])
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("PIN update failed (driver_id=%s)", u.driver_id)
        return jsonify({"error": "Failed to update PIN"}), 500
    return jsonify({"ok": True})


# ---------- Vehicles ----------
@bp.get("/reports/vehicles")
@require_role(ROLE_DRIVER)
def my_vehicles():
    u = _current_user()
    s = db_session()
    try:
        ids = assigned_vehicle_ids(s, u.driver_id)
        vehicles = list_vehicles(s, ids)
    except SQLAlchemyError:
        return _db_error("my_vehicles")
    return jsonify({
        "vehicles": [vehicle_to_dict(v) for v in vehicles],
        "driverId": u.driver_id,
        "vehicleIds": ids,
    })


@bp.get("/reports/vehicle-preference")
@require_role(ROLE_DRIVER)
def vehicle_preference_get():
    u = _current_user()
    try:
        vehicle_id = get_vehicle_preference(db_session(), u.driver_id)
    except SQLAlchemyError:
        return _db_error("vehicle_preference_get")
    return jsonify({"vehicleId": vehicle_id})


@bp.put("/reports/vehicle-preference")
@require_role(ROLE_DRIVER)
def vehicle_preference_put():
    u = _current_user()
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"error": "Invalid JSON"}), 400

    vehicle_id = body.get("vehicleId")
    if isinstance(vehicle_id, str) and vehicle_id.strip().isdigit():
        vehicle_id = int(vehicle_id.strip())
    if not isinstance(vehicle_id, int) or isinstance(vehicle_id, bool):
        return jsonify({"error": "vehicleId is required"}), 400
    if not 1 <= vehicle_id <= MAX_DB_ID:
        return jsonify({"error": "Vehicle not found."}), 400

    s = db_session()
    try:
        set_vehicle_preference(s, u.driver_id, vehicle_id)
        s.commit()
    except ValueError as e:
        s.rollback()
        return jsonify({"error": str(e)}), 400
    except SQLAlchemyError:
        s.rollback()
        return _db_error("vehicle_preference_put")
    return jsonify({"ok": True})
