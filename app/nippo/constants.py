"""
Central constants for the Nippo application.
"""
from __future__ import annotations

ROLE_DRIVER = "DRIVER"
ROLE_ADMIN = "ADMIN"
ROLE_ADMIN_VIEWER = "ADMIN_VIEWER"
VALID_ROLES = frozenset({ROLE_DRIVER, ROLE_ADMIN, ROLE_ADMIN_VIEWER})

# Pseudo-role accepted by require_role() only
ADMIN_OR_VIEWER = "ADMIN_OR_VIEWER"

# Rate master kinds
RATE_TAKUHAIBIN = "TAKUHAIBIN"
RATE_NEKOPOS = "NEKOPOS"

DEFAULT_REPORT_LIMIT = 30
MAX_REPORT_LIMIT = 1000

# Largest id a 32-bit INTEGER column can hold
MAX_DB_ID = 2**31 - 1

REPORT_COUNT_FIELDS = (
    "takuhaibin_completed",
    "takuhaibin_returned",
    "nekopos_completed",
    "nekopos_returned",
)

# Header row of the monthly payroll CSV (opened in Excel by the office)
MONTHLY_CSV_HEADER = (
    "ドライバー名",
    "稼働日数",
    "宅急便完了",
    "宅急便持戻",
    "ネコポス完了",
    "ネコポス持戻",
    "支払試算額",
)
