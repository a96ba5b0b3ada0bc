"""
Sock inventory rules.

- add_stock merges into an existing (color, cotton) line or creates one.
- remove_stock decrements a line and deletes it when it reaches zero.
- update overwrites every field of a line.
- filter_socks / filter_paginated / cotton_range / sort_socks build the read queries.

Each public operation is one transaction: it commits when it succeeds and
rolls back on any failure.
"""

import logging
import math
import operator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import (
    InsufficientStock,
    InvalidArgument,
    InvalidQuantity,
    InventoryError,
    MissingArgument,
    NotFound,
    StorageFailure,
)
from db import sock_store
from db.socks import Sock
from schemas.socks import SockIn

logger = logging.getLogger(__name__)

COMPARISONS = {
    "moreThan": operator.gt,
    "lessThan": operator.lt,
    "equal": operator.eq,
}

# Keys are lower-cased; lookups are case-insensitive.
SORT_FIELDS = {
    "color": Sock.color,
    "cottonpercentage": Sock.cotton_percentage,
}


@dataclass
class Page:
    items: List[Sock] = field(default_factory=list)
    total: int = 0
    page: int = 0
    size: int = 0

    @property
    def pages(self) -> int:
        if self.size <= 0:
            return 0
        return math.ceil(self.total / self.size)


@asynccontextmanager
async def transaction(db: AsyncSession, action: str, *, commit: bool = True):
    try:
        yield
        if commit:
            await db.commit()
    except InventoryError:
        await db.rollback()
        raise
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Database request failed while %s", action)
        raise StorageFailure("Database request failed")


def _require_sock(sock: Optional[SockIn]) -> SockIn:
    if sock is None:
        logger.warning("Rejected request without a sock record")
        raise MissingArgument("Sock record is required")
    return sock


def _check_quantity(quantity: int) -> None:
    if quantity is None or quantity <= 0:
        logger.warning("Rejected non-positive quantity %s", quantity)
        raise InvalidQuantity("Quantity must be greater than zero")


async def merge_stock(
    db: AsyncSession,
    color: Optional[str],
    cotton_percentage: int,
    quantity: int,
    *,
    validate: bool = True,
) -> Tuple[Sock, bool]:
    """
    Add ``quantity`` pairs to the (color, cotton_percentage) line, creating it if needed.

    Returns the stored line and whether it was created. Does not commit.
    With ``validate=False`` zero and negative quantities are written as given
    (the spreadsheet import relies on this).
    """
    if validate:
        _check_quantity(quantity)

    existed = await sock_store.find_by_attributes(db, color, cotton_percentage) is not None
    sock = await sock_store.upsert_quantity(db, color, cotton_percentage, quantity)
    return sock, not existed


async def add_stock(db: AsyncSession, sock: Optional[SockIn]) -> Sock:
    sock = _require_sock(sock)

    async with transaction(db, "adding stock"):
        stored, created = await merge_stock(db, sock.color, sock.cotton_percentage, sock.quantity)

    if created:
        logger.info(
            "Created %s pairs of %s socks with %s%% cotton",
            stored.quantity, stored.color, stored.cotton_percentage,
        )
    else:
        logger.info(
            "Added %s pairs of %s socks with %s%% cotton, now %s on hand",
            sock.quantity, stored.color, stored.cotton_percentage, stored.quantity,
        )
    return stored


async def remove_stock(db: AsyncSession, sock: Optional[SockIn]) -> Optional[Sock]:
    """Take ``sock.quantity`` pairs out of stock. Returns the remaining line, or None if it was deleted."""
    sock = _require_sock(sock)
    _check_quantity(sock.quantity)

    async with transaction(db, "removing stock"):
        existing = await sock_store.lock_by_attributes(db, sock.color, sock.cotton_percentage)
        if existing is None:
            logger.warning(
                "No %s socks with %s%% cotton in stock", sock.color, sock.cotton_percentage
            )
            raise NotFound("No matching item")

        if existing.quantity < sock.quantity:
            logger.warning(
                "Not enough %s socks with %s%% cotton: %s on hand, %s requested",
                sock.color, sock.cotton_percentage, existing.quantity, sock.quantity,
            )
            raise InsufficientStock(
                f"Not enough socks available: {existing.quantity} on hand, {sock.quantity} requested"
            )

        remaining = existing.quantity - sock.quantity
        if remaining == 0:
            await sock_store.delete(db, existing)
            result = None
        else:
            existing.quantity = remaining
            result = await sock_store.save(db, existing)

    logger.info(
        "Removed %s pairs of %s socks with %s%% cotton, %s left",
        sock.quantity, sock.color, sock.cotton_percentage, remaining,
    )
    return result


async def update(db: AsyncSession, sock_id: Optional[int], sock: Optional[SockIn]) -> Sock:
    """Overwrite color, cotton percentage and quantity of line ``sock_id``."""
    if sock is None or sock_id is None or sock_id <= 0:
        logger.warning("Rejected update of id=%s with body=%r", sock_id, sock)
        raise MissingArgument("A positive id and a sock record are required")

    async with transaction(db, "updating socks"):
        existing = await sock_store.get(db, sock_id)
        if existing is None:
            logger.warning("Sock id=%s not found", sock_id)
            raise NotFound("Item not found")

        existing.color = sock.color
        existing.cotton_percentage = sock.cotton_percentage
        existing.quantity = sock.quantity
        stored = await sock_store.save(db, existing)

    logger.info("Updated socks id=%s", sock_id)
    return stored


async def list_all(db: AsyncSession) -> List[Sock]:
    async with transaction(db, "listing socks", commit=False):
        return await sock_store.list_all(db)


async def filter_socks(
    db: AsyncSession,
    color: Optional[str] = None,
    comparison: Optional[str] = None,
    cotton_percentage: Optional[int] = None,
) -> List[Sock]:
    """
    Filter by color and/or cotton percentage.

    ``comparison`` is one of moreThan / lessThan / equal and is only checked
    when ``cotton_percentage`` is given.
    """
    if color is None and comparison is None and cotton_percentage is None:
        logger.warning("Rejected filter without any criteria")
        raise MissingArgument("At least one filter is required: color, comparison or cottonPercentage")

    conditions = []
    if color:
        conditions.append(Sock.color == color)
    if cotton_percentage is not None:
        compare = COMPARISONS.get(comparison)
        if compare is None:
            logger.warning("Rejected comparison %r", comparison)
            raise InvalidArgument(f"Invalid comparison: {comparison}")
        conditions.append(compare(Sock.cotton_percentage, cotton_percentage))

    async with transaction(db, "filtering socks", commit=False):
        return await sock_store.find_matching(db, conditions)


async def filter_paginated(
    db: AsyncSession,
    color: Optional[str] = None,
    cotton_percentage: Optional[int] = None,
    page: int = 0,
    size: int = 10,
) -> Page:
    """Equality filter on color and/or cotton percentage, one page at a time.

    A page past the end comes back empty rather than as an error.
    """
    if color is None and cotton_percentage is None and page == 0 and size == 0:
        logger.warning("Rejected paginated filter without any criteria")
        raise MissingArgument("At least one filter is required: color, cottonPercentage, page or size")
    if page < 0 or size < 1:
        logger.warning("Rejected page=%s size=%s", page, size)
        raise InvalidArgument("page must be >= 0 and size must be >= 1")

    conditions = []
    if color is not None:
        conditions.append(Sock.color == color)
    if cotton_percentage is not None:
        conditions.append(Sock.cotton_percentage == cotton_percentage)

    async with transaction(db, "paginating socks", commit=False):
        try:
            items, total = await sock_store.find_page(db, conditions, page, size)
        except NotFound as exc:
            logger.warning("Returning an empty page: %s", exc)
            total = await sock_store.count_matching(db, conditions)
            return Page(items=[], total=total, page=page, size=size)
    return Page(items=items, total=total, page=page, size=size)


async def cotton_range(db: AsyncSession, min_cotton: Optional[int], max_cotton: Optional[int]) -> List[Sock]:
    """Lines whose cotton percentage lies in [min_cotton, max_cotton]."""
    if min_cotton is None or max_cotton is None:
        logger.warning("Rejected cotton range with a missing bound")
        raise InvalidArgument("Minimum and maximum cotton percentage are required")
    if min_cotton < 0 or max_cotton < 0:
        logger.warning("Rejected negative cotton range %s..%s", min_cotton, max_cotton)
        raise InvalidArgument("Cotton percentage cannot be negative")
    if min_cotton > max_cotton:
        logger.warning("Rejected cotton range %s..%s", min_cotton, max_cotton)
        raise InvalidArgument("Minimum cotton percentage cannot exceed the maximum")

    async with transaction(db, "querying cotton range", commit=False):
        return await sock_store.find_in_cotton_range(db, min_cotton, max_cotton)


async def sort_socks(db: AsyncSession, sort_by: Optional[str], ascending: bool = True) -> List[Sock]:
    column = SORT_FIELDS.get((sort_by or "").lower())
    if column is None:
        logger.warning("Rejected sort field %r", sort_by)
        raise InvalidArgument(f"Invalid sort field: {sort_by}")

    async with transaction(db, "sorting socks", commit=False):
        return await sock_store.list_ordered(db, column, ascending)
