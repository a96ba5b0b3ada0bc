import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import InventoryError
from db.database import get_async_session
from schemas.socks import SockIn, SockPage, SockRead
from services import batch_import, inventory

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/income", response_class=PlainTextResponse)
async def add_socks(sock: SockIn, db: AsyncSession = Depends(get_async_session)):
    """Register incoming socks"""
    await inventory.add_stock(db, sock)
    return f"Socks added to stock: {sock.quantity} pairs"


@router.post("/outcome", response_class=PlainTextResponse)
async def remove_socks(sock: SockIn, db: AsyncSession = Depends(get_async_session)):
    """Register outgoing socks"""
    await inventory.remove_stock(db, sock)
    return f"Socks removed from stock: {sock.quantity} pairs"


@router.get("/get/all/socks", response_model=List[SockRead])
async def get_all_socks(db: AsyncSession = Depends(get_async_session)):
    socks = await inventory.list_all(db)
    return [s.to_schema for s in socks]


@router.get("/filter", response_model=List[SockRead])
async def get_socks_by_filter(
    color: Optional[str] = None,
    comparison: Optional[str] = None,
    cotton_percentage: Optional[int] = Query(None, alias="cottonPercentage"),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Filter socks by color and/or cotton percentage.

    - comparison: moreThan, lessThan or equal; applied to cottonPercentage.
    """
    socks = await inventory.filter_socks(db, color, comparison, cotton_percentage)
    return [s.to_schema for s in socks]


@router.get("/filter/cotton", response_model=List[SockRead])
async def get_socks_by_cotton_range(
    min_cotton: int = Query(..., alias="minCottonPercentage"),
    max_cotton: int = Query(..., alias="maxCottonPercentage"),
    db: AsyncSession = Depends(get_async_session),
):
    socks = await inventory.cotton_range(db, min_cotton, max_cotton)
    return [s.to_schema for s in socks]


@router.get("/pagination", response_model=SockPage)
async def get_socks_page(
    color: Optional[str] = None,
    cotton_percentage: Optional[int] = Query(None, alias="cottonPercentage"),
    page: int = 0,
    size: int = 10,
    db: AsyncSession = Depends(get_async_session),
):
    result = await inventory.filter_paginated(db, color, cotton_percentage, page, size)
    return {
        "items": [s.to_schema for s in result.items],
        "total": result.total,
        "page": result.page,
        "size": result.size,
        "pages": result.pages,
    }


@router.get("/sort", response_model=List[SockRead])
async def sort_socks(
    sort_by: str = Query(..., alias="sortBy"),
    ascending: bool = True,
    db: AsyncSession = Depends(get_async_session),
):
    socks = await inventory.sort_socks(db, sort_by, ascending)
    return [s.to_schema for s in socks]


@router.put("/{sock_id}", response_class=PlainTextResponse)
async def update_socks(sock_id: int, sock: SockIn, db: AsyncSession = Depends(get_async_session)):
    """Overwrite every field of a stock line"""
    updated = await inventory.update(db, sock_id, sock)
    return (
        f"Socks {updated.id} updated: {updated.color}, "
        f"{updated.cotton_percentage}% cotton, {updated.quantity} pairs"
    )


@router.post("/batch", response_class=PlainTextResponse)
async def upload_socks_batch(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_async_session),
):
    """Import quantities from an Excel file (.xlsx / .xls)"""
    content = await file.read()
    try:
        result = await batch_import.import_batch(db, file.filename, content)
    except InventoryError as exc:
        logger.warning("Batch upload %r failed: %s", file.filename, exc.message)
        return PlainTextResponse(
            f"File processing failed: {exc.message}",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    return (
        f"Excel file processed: {result.rows} rows, "
        f"{result.created} created, {result.updated} updated"
    )
