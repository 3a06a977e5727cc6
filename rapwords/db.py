import os
from pathlib import Path
from typing import Optional, Union

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

WORD_DB_PATH = os.getenv("WORD_DB_PATH", "word.db")


class Base(DeclarativeBase):
    pass


def database_url(path: Union[str, Path], read_only: bool = False) -> str:
    if read_only:
        # sqlite URI filename so the serving path can't write
        return f"sqlite+aiosqlite:///file:{Path(path).as_posix()}?mode=ro&uri=true"
    return f"sqlite+aiosqlite:///{Path(path).as_posix()}"


def make_engine(
    path: Union[str, Path],
    read_only: bool = False,
    immediate: bool = False,
    timeout: Optional[float] = None,
) -> AsyncEngine:
    """
    Engine over a SQLite word store.
    - read_only: open with mode=ro (serving path)
    - immediate: every transaction starts with BEGIN IMMEDIATE, which takes the
      write lock up front so two importers can't interleave
    - timeout: seconds to wait on a locked database (sqlite default 5)
    """
    connect_args = {"timeout": timeout} if timeout is not None else {}
    engine = create_async_engine(
        database_url(path, read_only), echo=False, poolclass=NullPool, connect_args=connect_args
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        if immediate:
            # hand transaction control to the "begin" listener below
            dbapi_connection.isolation_level = None
        cur = dbapi_connection.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    if immediate:
        @event.listens_for(engine.sync_engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = make_engine(WORD_DB_PATH, read_only=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def ping(target: AsyncEngine = engine):
    async with target.connect() as conn:
        await conn.execute(text("SELECT 1"))
