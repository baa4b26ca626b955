import csv
import io
from datetime import date

import pytest
from werkzeug.security import generate_password_hash

from app.nippo import create_app
from app.nippo.db import session_scope
from app.nippo.models import AuditEvent, Base, Driver
from app.nippo.modules.reports.models import DailyReport, RateMaster


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        admin = Driver(name="Admin", role="ADMIN", company_code="AAA", pin_hash=generate_password_hash("9999"))
        baba = Driver(name="Baba Jiro", role="DRIVER", company_code="AAA", driver_code="AAA654321",
                      pin_hash=generate_password_hash("654321"))
        aoki = Driver(name="Aoki Taro", role="DRIVER", company_code="AAA", driver_code="AAA123456",
                      pin_hash=generate_password_hash("123456"))
        other = Driver(name="Other Co", role="DRIVER", company_code="ACE", driver_code="ACE000001")
        s.add_all([admin, baba, aoki, other])
        s.flush()

        s.add_all([
            RateMaster(kind="TAKUHAIBIN", rate_per_completed=150),
            RateMaster(kind="NEKOPOS", rate_per_completed=50),
            DailyReport(driver_id=aoki.id, report_date=date(2026, 10, 1), takuhaibin_completed=100,
                        takuhaibin_returned=2, nekopos_completed=30, nekopos_returned=1),
            DailyReport(driver_id=aoki.id, report_date=date(2026, 10, 31), takuhaibin_completed=90,
                        takuhaibin_returned=0, nekopos_completed=10, nekopos_returned=0),
            DailyReport(driver_id=aoki.id, report_date=date(2026, 11, 1), takuhaibin_completed=999),
            DailyReport(driver_id=baba.id, report_date=date(2026, 10, 1), takuhaibin_completed=50),
        ])
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _admin(client):
    r = client.post("/api/auth/login", json={"loginType": "admin", "companyCode": "AAA", "pin": "9999"})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json['token']}"}


def test_daily_overview(client):
    h = _admin(client)
    r = client.get("/api/admin/daily?date=2026-10-01", headers=h)
    assert r.status_code == 200
    body = r.json
    assert body["date"] == "2026-10-01"
    assert body["driverCount"] == 4
    assert body["reportCount"] == 2

    names = [e["driver"]["name"] for e in body["entries"]]
    assert names == sorted(names)
    by_name = {e["driver"]["name"]: e for e in body["entries"]}
    assert by_name["Aoki Taro"]["report"]["takuhaibin_completed"] == 100
    assert by_name["Aoki Taro"]["driver"]["label"] == "Aoki"
    assert by_name["Admin"]["report"] is None


def test_daily_overview_defaults_to_today(client, monkeypatch):
    monkeypatch.setattr("app.nippo.modules.admin.api.today_jst", lambda **_kw: "2026-10-31")
    r = client.get("/api/admin/daily", headers=_admin(client))
    assert r.json["date"] == "2026-10-31"
    assert r.json["reportCount"] == 1


def test_daily_overview_bad_date(client):
    r = client.get("/api/admin/daily?date=31/10/2026", headers=_admin(client))
    assert r.status_code == 400

    # Compact dates are not accepted
    r = client.get("/api/admin/daily?date=20261001", headers=_admin(client))
    assert r.status_code == 400


def test_monthly_summary(client):
    r = client.get("/api/admin/monthly?month=2026-10", headers=_admin(client))
    assert r.status_code == 200
    assert r.json["month"] == "2026-10"
    assert r.json["rates"] == {"takuhaibin": 150, "nekopos": 50}

    entries = r.json["entries"]
    # DRIVER role only, ordered by name
    assert [e["driver"]["name"] for e in entries] == ["Aoki Taro", "Baba Jiro", "Other Co"]

    aoki = entries[0]
    assert aoki["totalTakuhaibinCompleted"] == 190
    assert aoki["totalTakuhaibinReturned"] == 2
    assert aoki["totalNekoposCompleted"] == 40
    assert aoki["totalNekoposReturned"] == 1
    assert aoki["workDays"] == 2
    assert aoki["estimatedPayment"] == 190 * 150 + 40 * 50

    other = entries[2]
    assert other["workDays"] == 0
    assert other["estimatedPayment"] == 0


def test_monthly_defaults_and_validation(client, monkeypatch):
    h = _admin(client)
    monkeypatch.setattr("app.nippo.modules.admin.api.current_month_jst", lambda **_kw: "2026-11")
    r = client.get("/api/admin/monthly", headers=h)
    assert r.json["month"] == "2026-11"
    assert r.json["entries"][0]["totalTakuhaibinCompleted"] == 999

    for bad in ("2026-13", "2026-1", "oct"):
        r = client.get(f"/api/admin/monthly?month={bad}", headers=h)
        assert r.status_code == 400, bad


def test_monthly_csv(client):
    r = client.get("/api/admin/monthly.csv?month=2026-10", headers=_admin(client))
    assert r.status_code == 200
    assert r.headers["Content-Type"].startswith("text/csv")
    assert 'filename="monthly_2026-10.csv"' in r.headers["Content-Disposition"]

    text = r.data.decode("utf-8")
    assert text.startswith("\ufeff")
    rows = list(csv.reader(io.StringIO(text.lstrip("\ufeff"))))
    assert rows[0][0] == "ドライバー名"
    assert len(rows[0]) == 7
    assert rows[1] == ["Aoki Taro", "2", "190", "2", "40", "1", str(190 * 150 + 40 * 50)]


def test_users_list_is_company_scoped(client):
    r = client.get("/api/admin/users", headers=_admin(client))
    assert r.status_code == 200
    names = [d["name"] for d in r.json["drivers"]]
    assert names == ["Admin", "Aoki Taro", "Baba Jiro"]
    assert all("pin_hash" not in d for d in r.json["drivers"])


def test_create_driver(client, app):
    h = _admin(client)
    r = client.post("/api/admin/users", headers=h, json={
        "name": "  Chiba Saburo ",
        "officeCode": "100200",
        "driverCode": "AAA777777",
    })
    assert r.status_code == 200
    assert r.json["driver"]["name"] == "Chiba Saburo"
    assert r.json["driver"]["role"] == "DRIVER"
    assert r.json["driver"]["company_code"] == "AAA"

    # The new driver logs in with the numeric tail of the code
    r = client.post("/api/auth/login", json={"loginType": "driver", "driverCode": "AAA777777"})
    assert r.status_code == 200

    with session_scope(app) as s:
        assert s.query(AuditEvent).filter(AuditEvent.action == "driver.create").count() == 1


def test_create_driver_validation(client):
    h = _admin(client)
    base = {"name": "X", "officeCode": "100200", "driverCode": "AAA888888"}

    r = client.post("/api/admin/users", headers=h, json={**base, "name": " "})
    assert r.status_code == 400
    r = client.post("/api/admin/users", headers=h, json={**base, "officeCode": "12"})
    assert r.status_code == 400
    r = client.post("/api/admin/users", headers=h, json={**base, "driverCode": "aaa888888"})
    assert r.status_code == 400
    r = client.post("/api/admin/users", headers=h, json={**base, "driverCode": "ACE888888"})
    assert r.status_code == 400
    assert r.json["error"] == "Driver code does not belong to your company."

    r = client.post("/api/admin/users", headers=h, json={**base, "driverCode": "AAA123456"})
    assert r.status_code == 400
    assert r.json["error"] == "This driver code is already in use."


def test_create_driver_stays_in_admin_company(client):
    h = _admin(client)
    base = {"name": "Chiba Saburo", "officeCode": "100200", "driverCode": "AAA777777"}

    r = client.post("/api/admin/users", headers=h, json={**base, "companyCode": "ZZZZZZZZ"})
    assert r.status_code == 400
    assert r.json["error"] == "Drivers can only be created in your own company."
    names = [d["name"] for d in client.get("/api/admin/users", headers=h).json["drivers"]]
    assert "Chiba Saburo" not in names

    r = client.post("/api/admin/users", headers=h, json={**base, "companyCode": "AAA"})
    assert r.status_code == 200
    assert r.json["driver"]["company_code"] == "AAA"
    names = [d["name"] for d in client.get("/api/admin/users", headers=h).json["drivers"]]
    assert "Chiba Saburo" in names
