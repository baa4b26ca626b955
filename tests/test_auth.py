from collections import defaultdict
from datetime import datetime, timedelta

import pytest
from itsdangerous import URLSafeTimedSerializer
from werkzeug.security import generate_password_hash

from app.nippo import create_app
from app.nippo.auth import issue_token
from app.nippo.db import session_scope
from app.nippo.models import AuditEvent, Base, Driver
from app.nippo.rbac import can_admin_read, can_admin_write, is_admin_role, is_admin_viewer_role, role_satisfies


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        s.add_all([
            Driver(
                name="Aoki Taro",
                role="DRIVER",
                company_code="AAA",
                office_code="100200",
                driver_code="AAA123456",
                pin_hash=generate_password_hash("123456"),
            ),
            Driver(name="No Pin", role="DRIVER", company_code="AAA", driver_code="AAA999999", pin_hash=None),
            Driver(name="Admin", role="ADMIN", company_code="AAA", pin_hash=generate_password_hash("9999")),
            Driver(name="Viewer", role="ADMIN_VIEWER", company_code="AAA"),
        ])
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _driver_id(app, name):
    with session_scope(app) as s:
        return s.query(Driver).filter(Driver.name == name).one().id


def _bearer(app, driver_id, role, company_code="AAA"):
    with app.app_context():
        return {"Authorization": f"Bearer {issue_token(driver_id, role, company_code)}"}


def test_driver_login_ok(client, app):
    r = client.post("/api/auth/login", json={"loginType": "driver", "driverCode": "aaa123456"})
    assert r.status_code == 200
    assert r.json["token"]
    assert r.json["driver"]["name"] == "Aoki Taro"
    assert r.json["driver"]["role"] == "DRIVER"
    assert r.json["driver"]["driverCode"] == "AAA123456"

    r = client.get("/api/reports/profile", headers={"Authorization": f"Bearer {r.json['token']}"})
    assert r.status_code == 200

    with session_scope(app) as s:
        assert s.query(AuditEvent).filter(AuditEvent.action == "auth.login").count() == 1


def test_driver_login_validation(client):
    r = client.post("/api/auth/login", json={"loginType": "driver", "driverCode": "AAA12"})
    assert r.status_code == 400

    r = client.post("/api/auth/login", json={"loginType": "driver", "driverCode": "AAA000000"})
    assert r.status_code == 401

    r = client.post("/api/auth/login", json={"loginType": "driver", "driverCode": "AAA123456", "pin": "000000"})
    assert r.status_code == 401


def test_driver_without_pin_hash_is_server_error(client):
    r = client.post("/api/auth/login", json={"loginType": "driver", "driverCode": "AAA999999"})
    assert r.status_code == 500


def test_admin_login(client):
    r = client.post("/api/auth/login", json={"loginType": "admin", "companyCode": "aaa", "pin": "9999"})
    assert r.status_code == 200
    assert r.json["driver"]["role"] == "ADMIN"
    assert "driverCode" not in r.json["driver"]

    r = client.post("/api/auth/login", json={"loginType": "admin", "companyCode": "AAA", "pin": "0000"})
    assert r.status_code == 401
    r = client.post("/api/auth/login", json={"loginType": "admin", "companyCode": "ZZZ", "pin": "9999"})
    assert r.status_code == 401
    r = client.post("/api/auth/login", json={"loginType": "admin", "companyCode": "AAAA", "pin": "9999"})
    assert r.status_code == 400
    r = client.post("/api/auth/login", json={"loginType": "admin", "companyCode": "AAA"})
    assert r.status_code == 400


def test_login_rejects_bad_body(client):
    r = client.post("/api/auth/login", data="not json", content_type="application/json")
    assert r.status_code == 400
    r = client.post("/api/auth/login", json={"loginType": "root"})
    assert r.status_code == 400
    assert r.json["error"] == "Invalid login type"


def test_login_rate_limited(client):
    for _ in range(5):
        r = client.post("/api/auth/login", json={"loginType": "driver", "driverCode": "AAA000000"})
        assert r.status_code == 401
    r = client.post("/api/auth/login", json={"loginType": "driver", "driverCode": "AAA123456"})
    assert r.status_code == 429


def test_login_attempts_do_not_accumulate(client, app):
    attempts = app.extensions.setdefault("login_attempts", defaultdict(list))
    attempts["10.0.0.9"] = [datetime.utcnow() - timedelta(seconds=600)]

    r = client.post("/api/auth/login", json={"loginType": "driver", "driverCode": "AAA000000"})
    assert r.status_code == 401
    attempts = app.extensions["login_attempts"]
    assert "10.0.0.9" not in attempts
    assert len(attempts["127.0.0.1"]) == 1

    r = client.post("/api/auth/login", json={"loginType": "driver", "driverCode": "AAA123456"})
    assert r.status_code == 200
    assert "127.0.0.1" not in app.extensions["login_attempts"]


def test_invalid_tokens_are_unauthorized(client, app):
    r = client.get("/api/reports/me", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401
    r = client.get("/api/reports/me", headers={"Authorization": "Token abc"})
    assert r.status_code == 401

    forged = URLSafeTimedSerializer("other-secret", salt="nippo.auth-token").dumps({"sub": "1", "role": "DRIVER"})
    r = client.get("/api/reports/me", headers={"Authorization": f"Bearer {forged}"})
    assert r.status_code == 401

    with app.app_context():
        bad_role = URLSafeTimedSerializer("test-secret", salt="nippo.auth-token").dumps({"sub": "1", "role": "ROOT"})
    r = client.get("/api/reports/me", headers={"Authorization": f"Bearer {bad_role}"})
    assert r.status_code == 401


def test_expired_token_is_unauthorized(client, app):
    headers = _bearer(app, _driver_id(app, "Aoki Taro"), "DRIVER")
    app.config["TOKEN_MAX_AGE_DAYS"] = -1
    r = client.get("/api/reports/me", headers=headers)
    assert r.status_code == 401


def test_role_gates(client, app):
    driver = _bearer(app, _driver_id(app, "Aoki Taro"), "DRIVER")
    admin = _bearer(app, _driver_id(app, "Admin"), "ADMIN")
    viewer = _bearer(app, _driver_id(app, "Viewer"), "ADMIN_VIEWER")

    # DRIVER endpoints admit admins but not viewers
    assert client.get("/api/reports/me", headers=driver).status_code == 200
    assert client.get("/api/reports/me", headers=admin).status_code == 200
    r = client.get("/api/reports/me", headers=viewer)
    assert r.status_code == 403
    assert r.json == {"error": "Forbidden"}

    # Daily overview is readable by admins and viewers
    assert client.get("/api/admin/daily", headers=admin).status_code == 200
    assert client.get("/api/admin/daily", headers=viewer).status_code == 200
    assert client.get("/api/admin/daily", headers=driver).status_code == 403

    # Everything else under /api/admin is admin only
    assert client.get("/api/admin/monthly", headers=admin).status_code == 200
    assert client.get("/api/admin/monthly", headers=viewer).status_code == 403
    assert client.get("/api/admin/users", headers=driver).status_code == 403


def test_role_predicates():
    assert is_admin_role("ADMIN")
    assert not is_admin_role("ADMIN_VIEWER")
    assert not is_admin_role(None)
    assert is_admin_viewer_role("ADMIN_VIEWER")
    assert not is_admin_viewer_role("DRIVER")
    assert can_admin_write("ADMIN")
    assert not can_admin_write("ADMIN_VIEWER")
    assert can_admin_read("ADMIN")
    assert can_admin_read("ADMIN_VIEWER")
    assert not can_admin_read("DRIVER")
    assert not can_admin_read(None)

    assert role_satisfies("ADMIN", "DRIVER")
    assert not role_satisfies("ADMIN_VIEWER", "DRIVER")
    assert not role_satisfies("DRIVER", "ADMIN")
    assert role_satisfies("ADMIN_VIEWER", "ADMIN_OR_VIEWER")
