"""DATABASE_URL handling for Alembic.

Kept apart from env.py so it can be tested without an Alembic context.
"""

from __future__ import annotations

import os
from urllib.parse import quote_plus, urlparse, urlunparse

_DRIVER_SCHEME = "postgresql+psycopg2://"


def to_sqlalchemy_url(url: str, password: str | None = None) -> str:
    """Point a ``postgres://`` or ``postgresql://`` URL at psycopg2.

    ``password`` fills in an empty password, the same way ``DB_PASSWORD``
    works for the application connection.
    """
    for scheme in ("postgres://", "postgresql://"):
        if url.startswith(scheme):
            url = _DRIVER_SCHEME + url[len(scheme):]
            break

    if password:
        parsed = urlparse(url)
        if not parsed.password and parsed.hostname:
            netloc = f"{quote_plus(parsed.username or '')}:{quote_plus(password)}@{parsed.hostname}"
            if parsed.port:
                netloc += f":{parsed.port}"
            url = urlunparse(parsed._replace(netloc=netloc))
    return url


def get_database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    return to_sqlalchemy_url(url, os.environ.get("DB_PASSWORD"))
