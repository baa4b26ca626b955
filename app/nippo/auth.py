from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, jsonify, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash

from app.nippo.audit import record_event
from app.nippo.constants import ROLE_ADMIN, ROLE_DRIVER, VALID_ROLES
from app.nippo.db import db_session
from app.nippo.models import Driver

bp = Blueprint("auth", __name__)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds
_TOKEN_SALT = "nippo.auth-token"


class AuthError(Exception):
    pass


@dataclass(frozen=True)
class AuthUser:
    driver_id: int
    role: str
    company_code: str


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=_TOKEN_SALT)


def issue_token(driver_id: int, role: str, company_code: str | None) -> str:
    payload = {"sub": str(driver_id), "role": role, "companyCode": company_code}
    return _serializer().dumps(payload)


def verify_auth_header(auth_header: str | None) -> AuthUser:
    """
    Decode an ``Authorization: Bearer <token>`` header into an AuthUser.
    Raises AuthError on anything short of a valid, unexpired token.
    """
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthError("Missing or invalid Authorization header")
    token = auth_header[len("Bearer "):].strip()
    max_age = int(current_app.config.get("TOKEN_MAX_AGE_DAYS", 30)) * 24 * 60 * 60
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        raise AuthError("Token expired")
    except BadSignature:
        raise AuthError("Invalid token signature")

    if not isinstance(payload, dict):
        raise AuthError("Invalid token payload")
    sub = payload.get("sub")
    role = payload.get("role")
    if not sub or role not in VALID_ROLES:
        raise AuthError("Invalid token payload")
    try:
        driver_id = int(sub)
    except (TypeError, ValueError):
        raise AuthError("Invalid token subject")
    company_code = payload.get("companyCode") or current_app.config.get("DEFAULT_COMPANY_CODE", "AAA")
    return AuthUser(driver_id=driver_id, role=role, company_code=company_code)


def load_current_user() -> None:
    """
    Loads g.current_user from the bearer token (no DB access).
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_user = None
    g.auth_error = None
    if request.path.startswith(("/health", "/healthz")):
        return

    header = request.headers.get("Authorization")
    if not header:
        return
    try:
        g.current_user = verify_auth_header(header)
    except AuthError as e:
        g.auth_error = str(e)


def _attempts() -> dict[str, list[datetime]]:
    return current_app.extensions.setdefault("login_attempts", defaultdict(list))


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    attempts = _attempts()
    # Drop every client whose attempts have all aged out
    for key in [k for k, ts in attempts.items() if not ts or ts[-1] <= cutoff]:
        del attempts[key]
    recent = [t for t in attempts.get(ip, ()) if t > cutoff]
    if not recent:
        return False
    attempts[ip] = recent
    return len(recent) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _attempts()[ip].append(datetime.utcnow())


def _login_response(driver: Driver, *, include_driver_code: bool):
    company_code = driver.company_code or current_app.config.get("DEFAULT_COMPANY_CODE", "AAA")
    body = {
        "id": driver.id,
        "name": driver.name,
        "role": driver.role,
        "companyCode": driver.company_code,
    }
    if include_driver_code:
        body["driverCode"] = driver.driver_code
    return jsonify({"token": issue_token(driver.id, driver.role, company_code), "driver": body})


def _login_failed(s, *, login_type: str, subject: str, reason: str):
    record_event(
        s,
        actor_id=None,
        action="auth.login_failed",
        entity_type="Driver",
        entity_id=subject,
        reason=reason,
        metadata={"login_type": login_type},
    )
    s.commit()


def _driver_login(s, body: dict):
    driver_code = body.get("driverCode")
    if not isinstance(driver_code, str) or len(driver_code) != 9:
        return jsonify({"error": "Driver code must be 9 characters."}), 400

    code = driver_code.upper()
    # Until a driver changes it, the PIN is the numeric tail of the driver code
    pin = body.get("pin")
    if not isinstance(pin, str) or not pin:
        pin = code[3:]
    driver = (
        s.query(Driver)
        .filter(Driver.driver_code == code, Driver.role == ROLE_DRIVER)
        .one_or_none()
    )
    if driver is None:
        current_app.logger.info("Driver login: unknown code %s", code)
        _login_failed(s, login_type="driver", subject=code, reason="Unknown driver code")
        return jsonify({"error": f'Driver code "{code}" was not found.'}), 401
    if not driver.pin_hash:
        current_app.logger.error("Driver login: driver_id=%s has no PIN hash", driver.id)
        return jsonify({"error": "Driver account is incomplete. Contact an administrator."}), 500
    if not check_password_hash(driver.pin_hash, pin):
        _login_failed(s, login_type="driver", subject=code, reason="Invalid PIN")
        return jsonify({"error": "Invalid PIN. Check the 6 digits of your driver code."}), 401

    record_event(s, actor_id=driver.id, actor_role=driver.role, action="auth.login", entity_type="Driver", entity_id=str(driver.id))
    s.commit()
    return _login_response(driver, include_driver_code=True)


def _admin_login(s, body: dict):
    company_code = body.get("companyCode")
    pin = body.get("pin")
    if not isinstance(company_code, str) or len(company_code) != 3:
        return jsonify({"error": "Company code must be 3 characters."}), 400
    if not isinstance(pin, str) or not pin:
        return jsonify({"error": "PIN is required."}), 400

    code = company_code.upper()
    admin = (
        s.query(Driver)
        .filter(Driver.company_code == code, Driver.role == ROLE_ADMIN, Driver.pin_hash.isnot(None))
        .order_by(Driver.id.asc())
        .first()
    )
    if admin is None:
        _login_failed(s, login_type="admin", subject=code, reason="Unknown company code")
        return jsonify({"error": "Invalid company code."}), 401
    if not check_password_hash(admin.pin_hash, pin):
        _login_failed(s, login_type="admin", subject=code, reason="Invalid PIN")
        return jsonify({"error": "Invalid PIN."}), 401

    record_event(s, actor_id=admin.id, actor_role=admin.role, action="auth.login", entity_type="Driver", entity_id=str(admin.id))
    s.commit()
    return _login_response(admin, include_driver_code=False)


@bp.post("/login")
def login_post():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"error": "Invalid JSON"}), 400

    ip = request.remote_addr or "unknown"
    if _check_rate_limit(ip):
        current_app.logger.warning("Login rate limit hit (ip=%s)", ip)
        return jsonify({"error": "Too many login attempts. Please wait 5 minutes."}), 429

    login_type = body.get("loginType")
    if login_type not in ("driver", "admin"):
        return jsonify({"error": "Invalid login type"}), 400

    _record_attempt(ip)
    try:
        s = db_session()
        if login_type == "driver":
            resp = _driver_login(s, body)
        else:
            resp = _admin_login(s, body)
    except Exception:
        current_app.logger.exception("Login crashed (type=%s request_id=%s)", login_type, getattr(g, "request_id", None))
        raise

    status = resp[1] if isinstance(resp, tuple) else 200
    if status == 200:
        _attempts().pop(ip, None)
    return resp
