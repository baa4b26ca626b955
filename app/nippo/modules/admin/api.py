from __future__ import annotations

from flask import Blueprint, Response, current_app, g, jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.nippo.auth import AuthUser
from app.nippo.constants import ADMIN_OR_VIEWER, ROLE_ADMIN
from app.nippo.dates import current_month_jst, month_bounds, parse_date, today_jst
from app.nippo.db import db_session
from app.nippo.modules.admin.service import (
    create_driver,
    daily_overview,
    driver_to_dict,
    list_company_drivers,
    monthly_csv,
    monthly_summary,
    validate_driver_payload,
)
from app.nippo.modules.vehicles.service import list_vehicles, vehicle_to_dict
from app.nippo.rbac import require_role

bp = Blueprint("admin", __name__)


def _current_user() -> AuthUser:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _tz() -> str:
    return current_app.config.get("REPORT_TIMEZONE", "Asia/Tokyo")


def _db_error(what: str):
    current_app.logger.exception("%s failed (request_id=%s)", what, getattr(g, "request_id", None))
    return jsonify({"error": "DB error"}), 500


def _requested_month() -> str:
    month = (request.args.get("month") or "").strip() or current_month_jst(tz_name=_tz())
    month_bounds(month)  # raises ValueError
    return month


# ---------- Daily ----------
@bp.get("/daily")
@require_role(ADMIN_OR_VIEWER)
def daily():
    raw = (request.args.get("date") or "").strip() or today_jst(tz_name=_tz())
    try:
        report_date = parse_date(raw)
    except ValueError:
        return jsonify({"error": "Invalid date; expected YYYY-MM-DD."}), 400
    try:
        overview = daily_overview(db_session(), report_date)
    except SQLAlchemyError:
        return _db_error("admin daily")
    current_app.logger.info(
        "[admin/daily] date=%s drivers=%s reports=%s",
        overview["date"],
        overview["driverCount"],
        overview["reportCount"],
    )
    return jsonify(overview)


# ---------- Monthly ----------
@bp.get("/monthly")
@require_role(ROLE_ADMIN)
def monthly():
    try:
        month = _requested_month()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    try:
        rates, entries = monthly_summary(db_session(), month)
    except SQLAlchemyError:
        return _db_error("admin monthly")
    return jsonify({"month": month, "rates": rates, "entries": [e.to_dict() for e in entries]})


@bp.get("/monthly.csv")
@require_role(ROLE_ADMIN)
def monthly_export():
    try:
        month = _requested_month()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    try:
        _rates, entries = monthly_summary(db_session(), month)
    except SQLAlchemyError:
        return _db_error("admin monthly.csv")
    return Response(
        monthly_csv(entries),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="monthly_{month}.csv"'},
    )


# ---------- Vehicles ----------
@bp.get("/vehicles")
@require_role(ROLE_ADMIN)
def vehicles():
    try:
        rows = list_vehicles(db_session())
    except SQLAlchemyError:
        return _db_error("admin vehicles")
    return jsonify({"vehicles": [vehicle_to_dict(v) for v in rows]})


# ---------- Users ----------
@bp.get("/users")
@require_role(ROLE_ADMIN)
def users_list():
    u = _current_user()
    try:
        drivers = list_company_drivers(db_session(), u.company_code)
    except SQLAlchemyError:
        return _db_error("admin users")
    return jsonify({"drivers": [driver_to_dict(d) for d in drivers]})


@bp.post("/users")
@require_role(ROLE_ADMIN)
def users_create():
    u = _current_user()
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"error": "Invalid JSON"}), 400

    errors = validate_driver_payload(body, u.company_code)
    if errors:
        return jsonify({"error": errors[0], "errors": errors}), 400

    s = db_session()
    try:
        driver = create_driver(s, body, u)
        s.commit()
    except (ValueError, IntegrityError) as e:
        s.rollback()
        msg = str(e) if isinstance(e, ValueError) else "This driver code is already in use."
        return jsonify({"error": msg}), 400
    except SQLAlchemyError:
        s.rollback()
        return _db_error("admin users create")
    return jsonify({"driver": driver_to_dict(driver)})
