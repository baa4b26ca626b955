import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    token_max_age_days: int
    company: str
    default_company_code: str
    report_timezone: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///nippo.db"),
        token_max_age_days=_getenv_int("TOKEN_MAX_AGE_DAYS", 30),
        company=_getenv("COMPANY", "DEFAULT").upper(),
        default_company_code=_getenv("DEFAULT_COMPANY_CODE", "AAA").upper(),
        report_timezone=_getenv("REPORT_TIMEZONE", "Asia/Tokyo"),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "TOKEN_MAX_AGE_DAYS": s.token_max_age_days,
        "COMPANY": s.company,
        "DEFAULT_COMPANY_CODE": s.default_company_code,
        "REPORT_TIMEZONE": s.report_timezone,
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
    }
