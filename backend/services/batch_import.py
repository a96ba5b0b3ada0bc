"""
Spreadsheet import of sock quantities.

Expected layout (first sheet): a header row, then one line per row with
color (text), cotton percentage (number) and quantity (number). Numbers are
truncated to integers. Every row is merged into stock like an income, without
the quantity check. A single bad row rolls back the whole file.
"""

import logging
import numbers
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import BatchProcessingError, InvalidArgument, InvalidFormat, MissingArgument
from services.inventory import merge_stock, transaction

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".xlsx", ".xls"}
EXPECTED_COLUMNS = 3


@dataclass
class BatchResult:
    created: int = 0
    updated: int = 0

    @property
    def rows(self) -> int:
        return self.created + self.updated


def _read_sheet(content: bytes) -> pd.DataFrame:
    try:
        return pd.read_excel(BytesIO(content), sheet_name=0, header=None)
    except Exception as exc:
        logger.warning("Could not read spreadsheet: %s", exc)
        raise BatchProcessingError(f"Could not read spreadsheet: {exc}") from exc


def _cell_text(value: Any, row_no: int) -> str:
    if not isinstance(value, str):
        raise BatchProcessingError(f"Row {row_no}: color must be text, got {value!r}")
    return value


def _cell_int(value: Any, column: str, row_no: int) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or pd.isna(value):
        raise BatchProcessingError(f"Row {row_no}: {column} must be a number, got {value!r}")
    return int(value)


async def import_batch(db: AsyncSession, filename: Optional[str], content: Optional[bytes]) -> BatchResult:
    if not content:
        logger.warning("Rejected empty upload %r", filename)
        raise MissingArgument("Uploaded file is empty")
    if len(content) > settings.batch_max_upload_bytes:
        logger.warning("Rejected upload %r of %s bytes", filename, len(content))
        raise InvalidArgument(
            f"Uploaded file exceeds {settings.batch_max_upload_bytes} bytes"
        )
    ext = Path(filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        logger.warning("Rejected upload %r: unsupported extension", filename)
        raise InvalidFormat("Invalid file format. Please upload an Excel file (.xlsx or .xls)")

    df = _read_sheet(content)
    if not df.empty and df.shape[1] < EXPECTED_COLUMNS:
        raise BatchProcessingError(
            f"Expected {EXPECTED_COLUMNS} columns (color, cottonPercentage, quantity), found {df.shape[1]}"
        )

    result = BatchResult()
    async with transaction(db, "importing socks batch"):
        # Row 0 is the header
        for idx, row in enumerate(df.itertuples(index=False, name=None)):
            if idx == 0:
                continue
            if all(pd.isna(v) for v in row):
                continue
            row_no = idx + 1
            color = _cell_text(row[0], row_no)
            cotton_percentage = _cell_int(row[1], "cottonPercentage", row_no)
            quantity = _cell_int(row[2], "quantity", row_no)

            _, created = await merge_stock(db, color, cotton_percentage, quantity, validate=False)
            if created:
                result.created += 1
            else:
                result.updated += 1

    logger.info(
        "Imported %s: %s rows, %s created, %s updated",
        filename, result.rows, result.created, result.updated,
    )
    return result
