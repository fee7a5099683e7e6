"""Database URL helpers for Alembic migrations.

Kept apart from env.py so they can be tested without an alembic context.
DATABASE_URL may be a postgres:// URL or a libpq key=value DSN (the form the
application passes straight to psycopg2); Alembic needs a SQLAlchemy URL.
"""

from __future__ import annotations

import os

from psycopg2.extensions import parse_dsn
from sqlalchemy.engine import URL

DRIVER = "postgresql+psycopg2"


def dsn_to_url(dsn: str) -> URL:
    """Convert any libpq connection string to a SQLAlchemy URL.

    Socket hosts (paths starting with "/") go in the query string, as
    SQLAlchemy expects for unix-domain connections.
    """
    params = parse_dsn(dsn)
    host = params.pop("host", None)
    port = params.pop("port", None)
    query: dict[str, str] = {}

    if host and host.startswith("/"):
        query["host"] = host
        host = None

    password = params.pop("password", None) or os.environ.get("DB_PASSWORD") or None

    return URL.create(
        DRIVER,
        username=params.pop("user", None),
        password=password,
        host=host,
        port=int(port) if port else None,
        database=params.pop("dbname", None),
        query=query,
    )


def get_database_url() -> str:
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    return dsn_to_url(dsn).render_as_string(hide_password=False)
