"""
Tenant branding. One deployment serves one company; COMPANY picks the entry.
"""
from __future__ import annotations

from types import MappingProxyType

DEFAULT_COMPANY = "DEFAULT"

COMPANIES = MappingProxyType(
    {
        "DEFAULT": MappingProxyType(
            {
                "code": "AAA",
                "name": "Niipo",
                "logoPath": "/logo/Niipo.svg",
                "faviconPath": "/logo/favicon.svg",
                "title": "Nippo | 配送日報集計システム",
                "description": "配送日報集計システム",
            }
        ),
        "ACE": MappingProxyType(
            {
                "code": "ACE",
                "name": "株式会社ACE CREATION",
                "logoPath": "/logo/Niipo.svg",
                "faviconPath": "/logo/favicon.svg",
                "title": "Nippo | 配送日報集計システム",
                "description": "配送日報集計システム（ACE CREATION）",
            }
        ),
    }
)


def get_company(active_code: str | None = None) -> dict:
    """Branding for ``active_code``; unknown or empty codes fall back to the default tenant."""
    key = (active_code or "").strip().upper() or DEFAULT_COMPANY
    entry = COMPANIES.get(key) or COMPANIES[DEFAULT_COMPANY]
    return dict(entry)
