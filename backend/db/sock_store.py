"""
Queries against the ``socks`` table.

These functions only talk to the database; they never commit. The inventory
rules decide the transaction boundary.
"""

from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core.exceptions import NotFound
from db.socks import Sock

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def find_by_attributes(db: AsyncSession, color: Optional[str], cotton_percentage: int) -> Optional[Sock]:
    res = await db.execute(
        select(Sock)
        .where(Sock.color == color)
        .where(Sock.cotton_percentage == cotton_percentage)
        .order_by(Sock.id.asc())
    )
    return res.scalars().first()


async def lock_by_attributes(db: AsyncSession, color: Optional[str], cotton_percentage: int) -> Optional[Sock]:
    """Same lookup as ``find_by_attributes`` but holds a row lock until commit (ignored on SQLite)."""
    res = await db.execute(
        select(Sock)
        .where(Sock.color == color)
        .where(Sock.cotton_percentage == cotton_percentage)
        .order_by(Sock.id.asc())
        .with_for_update()
    )
    return res.scalars().first()


async def get(db: AsyncSession, sock_id: int) -> Optional[Sock]:
    return await db.get(Sock, sock_id)


async def list_all(db: AsyncSession) -> List[Sock]:
    res = await db.execute(select(Sock).order_by(Sock.id.asc()))
    return list(res.scalars().all())


async def list_ordered(db: AsyncSession, column, ascending: bool = True) -> List[Sock]:
    order = column.asc() if ascending else column.desc()
    res = await db.execute(select(Sock).order_by(order))
    return list(res.scalars().all())


async def upsert_quantity(db: AsyncSession, color: Optional[str], cotton_percentage: int, delta: int) -> Sock:
    """
    Add ``delta`` pairs to the (color, cotton_percentage) line, creating it if absent.

    Runs as a single INSERT ... ON CONFLICT DO UPDATE against ux_socks_color_cotton,
    so concurrent callers never lose an increment.
    """
    insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)
    if insert is None:
        return await _locked_increment(db, color, cotton_percentage, delta)

    stmt = (
        insert(Sock)
        .values(color=color, cotton_percentage=cotton_percentage, quantity=delta)
        .on_conflict_do_update(
            index_elements=["color", "cotton_percentage"],
            set_={"quantity": Sock.quantity + delta},
        )
        .returning(Sock)
    )
    res = await db.scalars(stmt, execution_options={"populate_existing": True})
    return res.one()


async def _locked_increment(db: AsyncSession, color: Optional[str], cotton_percentage: int, delta: int) -> Sock:
    sock = await lock_by_attributes(db, color, cotton_percentage)
    if sock is None:
        sock = Sock(color=color, cotton_percentage=cotton_percentage, quantity=delta)
        db.add(sock)
    else:
        sock.quantity = sock.quantity + delta
    await db.flush()
    return sock


async def save(db: AsyncSession, sock: Sock) -> Sock:
    db.add(sock)
    await db.flush()
    return sock


async def delete(db: AsyncSession, sock: Sock) -> None:
    await db.delete(sock)
    await db.flush()


async def find_matching(db: AsyncSession, conditions: Sequence[ColumnElement]) -> List[Sock]:
    res = await db.execute(select(Sock).where(*conditions).order_by(Sock.id.asc()))
    return list(res.scalars().all())


async def count_matching(db: AsyncSession, conditions: Sequence[ColumnElement]) -> int:
    total = await db.scalar(select(func.count()).select_from(Sock).where(*conditions))
    return int(total or 0)


async def find_page(
    db: AsyncSession,
    conditions: Sequence[ColumnElement],
    page: int,
    size: int,
) -> Tuple[List[Sock], int]:
    """Return one page of matches plus the total match count.

    Raises NotFound when ``page`` is past the last page that has rows.
    """
    total = await count_matching(db, conditions)
    res = await db.execute(
        select(Sock)
        .where(*conditions)
        .order_by(Sock.id.asc())
        .offset(page * size)
        .limit(size)
    )
    items = list(res.scalars().all())
    if not items and page > 0:
        raise NotFound(f"page {page} is out of range ({total} matching items)")
    return items, total


async def find_in_cotton_range(db: AsyncSession, min_cotton: int, max_cotton: int) -> List[Sock]:
    res = await db.execute(
        select(Sock)
        .where(Sock.cotton_percentage >= min_cotton)
        .where(Sock.cotton_percentage <= max_cotton)
        .order_by(Sock.id.asc())
    )
    return list(res.scalars().all())
