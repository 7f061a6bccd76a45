import pathlib

from sqlalchemy.ext.asyncio import create_async_engine

from elevation_bonus.load_secrets import database_url, db_name, host, password, port, user


def build_database_url() -> str:
    """DATABASE_URL wins, then PostgreSQL settings, then a local SQLite file."""
    if database_url:
        return database_url
    if host:
        return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db_name}"
    file_path = pathlib.Path(__file__).parents[1] / "elevation_bonus.sqlite3"
    return f"sqlite+aiosqlite:///{file_path}"


DATABASE_URL = build_database_url()

if DATABASE_URL.startswith("postgresql"):
    engine = create_async_engine(DATABASE_URL, pool_size=20, max_overflow=20)
else:
    engine = create_async_engine(DATABASE_URL, echo=False)
