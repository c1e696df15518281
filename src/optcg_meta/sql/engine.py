from __future__ import annotations

import os
from typing import Optional

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from .constants import SCHEMA

Base = declarative_base()


def _build_url_from_env() -> str | None:
    """Construct a Postgres URL from component env vars.

    Recognized variables (OPTCG_DB_* preferred, falls back to POSTGRES_*):
      - HOST, PORT (default 5432)
      - NAME (database name; default 'optcg_meta')
      - USER, PASSWORD
      - SSLMODE (optional)
    """
    host = os.getenv("OPTCG_DB_HOST") or os.getenv("POSTGRES_HOST")
    user = os.getenv("OPTCG_DB_USER") or os.getenv("POSTGRES_USER")
    if not host or not user:
        return None
    port = os.getenv("OPTCG_DB_PORT") or os.getenv("POSTGRES_PORT") or "5432"
    name = os.getenv("OPTCG_DB_NAME") or os.getenv("POSTGRES_DB") or "optcg_meta"
    password = (
        os.getenv("OPTCG_DB_PASSWORD") or os.getenv("POSTGRES_PASSWORD") or ""
    )
    sslmode = os.getenv("OPTCG_DB_SSLMODE") or os.getenv("POSTGRES_SSLMODE")

    auth = f"{user}:{password}" if password != "" else f"{user}"
    url = f"postgresql://{auth}@{host}:{port}/{name}"
    if sslmode:
        url = f"{url}?sslmode={sslmode}"
    return url


def create_engine(url: Optional[str] = None, *, echo: bool = False) -> Engine:
    """Create a SQLAlchemy engine.

    Resolution order for URL:
    - explicit ``url`` arg
    - env ``OPTCG_DATABASE_URL``
    - env ``DATABASE_URL``
    - component env vars (see ``_build_url_from_env``)
    """
    database_url = (
        url
        or os.getenv("OPTCG_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or _build_url_from_env()
    )
    if not database_url:
        raise RuntimeError(
            "No database URL provided. Set OPTCG_DATABASE_URL or DATABASE_URL, "
            "or provide component env vars (OPTCG_DB_HOST/USER/[PASSWORD]/[NAME]/[PORT]/[SSLMODE])."
        )
    return _sa_create_engine(database_url, echo=echo, future=True)


def ensure_schema(engine: Engine) -> None:
    """Create the configured schema if it does not exist (idempotent)."""
    if not SCHEMA or engine.dialect.name != "postgresql":
        return
    with engine.begin() as conn:
        conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}"))


def create_all(engine: Engine) -> None:
    """Create all tables (idempotent)."""
    from . import models  # noqa: F401 - ensure models are imported

    ensure_schema(engine)
    Base.metadata.create_all(engine)
