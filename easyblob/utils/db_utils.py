import os

from sqlalchemy import URL, make_url


def get_async_db_url(url: str | URL) -> URL:
    parsed = make_url(url)
    if parsed.drivername in ("sqlite", "sqlite+pysqlite"):
        return parsed.set(drivername="sqlite+aiosqlite")
    if parsed.drivername in ("postgresql", "postgresql+psycopg2"):
        return parsed.set(drivername="postgresql+asyncpg")
    return parsed


def is_in_memory_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def ensure_sqlite_parent_dir(url: URL) -> None:
    """
    SQLite creates the database file on connect, but not the directories leading to it.
    """
    if url.get_backend_name() != "sqlite" or is_in_memory_sqlite(url) or not url.database:
        return
    parent = os.path.dirname(os.path.abspath(url.database))
    os.makedirs(parent, exist_ok=True)
