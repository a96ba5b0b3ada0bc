from __future__ import annotations

import asyncio
import os
import sys
from io import BytesIO
from pathlib import Path

import pandas as pd
import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "DEBUG"

from db.database import Base  # noqa: E402
from db.socks import Sock  # noqa: E402
from db import sock_store  # noqa: E402


@pytest.fixture()
def session_maker(tmp_path):
    db_file = tmp_path / "socks.db"
    sync_engine = create_engine(f"sqlite+pysqlite:///{db_file}")
    Base.metadata.create_all(bind=sync_engine, tables=[Sock.__table__])
    sync_engine.dispose()

    # NullPool: every asyncio.run() gets a fresh connection on its own loop
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_file}", poolclass=NullPool)
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
def run(session_maker):
    """Run ``fn(db, *args, **kwargs)`` in a fresh session and event loop."""

    def _run(fn, *args, **kwargs):
        async def _go():
            async with session_maker() as db:
                return await fn(db, *args, **kwargs)

        return asyncio.run(_go())

    return _run


@pytest.fixture()
def stock(run):
    """Current stock as {(color, cotton): quantity}."""

    def _stock():
        return {
            (s.color, s.cotton_percentage): s.quantity
            for s in run(sock_store.list_all)
        }

    return _stock


def make_xlsx(rows, header=("color", "cottonPercentage", "quantity")) -> bytes:
    buf = BytesIO()
    pd.DataFrame(list(rows), columns=list(header)).to_excel(buf, index=False, engine="openpyxl")
    return buf.getvalue()
