from flask import Blueprint, current_app, jsonify

from app.nippo.companies import get_company

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    company = get_company(current_app.config.get("COMPANY"))
    return jsonify({"name": company["name"], "title": company["title"]})


@bp.get("/api/company")
def company():
    """Branding of the tenant this deployment serves."""
    return jsonify(get_company(current_app.config.get("COMPANY")))


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for container probes. No DB access, minimal overhead.
    """
    return "ok", 200
