# backend/mbdara/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/mbdara.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location (postgresql://...)
        "sqlite:///mbdara.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Connection pool bounds (ignored for SQLite, see pool_options())
    DB_POOL_SIZE = _env_int("DB_POOL_SIZE", 3)
    DB_MAX_OVERFLOW = _env_int("DB_MAX_OVERFLOW", 5)
    DB_POOL_TIMEOUT = _env_int("DB_POOL_TIMEOUT", 10)
    DB_POOL_RECYCLE = _env_int("DB_POOL_RECYCLE", 1800)

    # Session tokens are issued through the CLI
    SESSION_TTL_HOURS = _env_int("SESSION_TTL_HOURS", 24)

    # decimal rounding mode name used when profit is rounded to whole units
    PROFIT_ROUNDING = os.environ.get("PROFIT_ROUNDING", "ROUND_HALF_UP")

    DEFAULT_PAGE_LIMIT = _env_int("DEFAULT_PAGE_LIMIT", 100)
    MAX_PAGE_LIMIT = _env_int("MAX_PAGE_LIMIT", 500)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    )


def pool_options(config) -> dict:
    """
    Engine options bounding the connection pool.

    SQLite gets its driver defaults from Flask-SQLAlchemy (StaticPool for
    in-memory databases), which reject QueuePool arguments.
    """
    uri = config.get("SQLALCHEMY_DATABASE_URI") or ""
    if uri.startswith("sqlite"):
        return {}
    return {
        "pool_size": config.get("DB_POOL_SIZE", 3),
        "max_overflow": config.get("DB_MAX_OVERFLOW", 5),
        "pool_timeout": config.get("DB_POOL_TIMEOUT", 10),
        "pool_recycle": config.get("DB_POOL_RECYCLE", 1800),
        "pool_pre_ping": True,
    }
