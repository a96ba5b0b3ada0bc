from __future__ import annotations

import pytest

from conftest import make_xlsx
from core.config import settings
from core.exceptions import BatchProcessingError, InvalidArgument, InvalidFormat, MissingArgument
from schemas.socks import SockIn
from services import batch_import, inventory


def test_existing_and_new_rows(run, stock):
    run(inventory.add_stock, SockIn(color="Red", cotton_percentage=80, quantity=5))
    content = make_xlsx([("Red", 80, 3), ("Blue", 40, 7)])

    result = run(batch_import.import_batch, "socks.xlsx", content)

    assert (result.created, result.updated, result.rows) == (1, 1, 2)
    assert stock() == {("Red", 80): 8, ("Blue", 40): 7}


def test_repeated_pair_in_one_file_is_merged(run, stock):
    content = make_xlsx([("Red", 80, 3), ("Red", 80, 4)])

    result = run(batch_import.import_batch, "socks.XLSX", content)

    assert (result.created, result.updated) == (1, 1)
    assert stock() == {("Red", 80): 7}


def test_numbers_are_truncated(run, stock):
    content = make_xlsx([("Grey", 79.9, 2.7)])

    run(batch_import.import_batch, "socks.xlsx", content)

    assert stock() == {("Grey", 79): 2}


def test_zero_and_negative_quantities_are_accepted(run, stock):
    run(inventory.add_stock, SockIn(color="Red", cotton_percentage=80, quantity=5))
    content = make_xlsx([("Red", 80, -2), ("White", 100, 0)])

    run(batch_import.import_batch, "socks.xlsx", content)

    assert stock() == {("Red", 80): 3, ("White", 100): 0}


def test_header_only_file_imports_nothing(run, stock):
    result = run(batch_import.import_batch, "socks.xlsx", make_xlsx([]))

    assert result.rows == 0
    assert stock() == {}


def test_empty_file(run):
    with pytest.raises(MissingArgument):
        run(batch_import.import_batch, "socks.xlsx", b"")


@pytest.mark.parametrize("filename", ["socks.txt", "socks.csv", "socks", None])
def test_unsupported_extension(run, filename):
    with pytest.raises(InvalidFormat):
        run(batch_import.import_batch, filename, make_xlsx([("Red", 80, 1)]))


def test_oversized_upload(run, monkeypatch):
    monkeypatch.setattr(settings, "batch_max_upload_bytes", 10)
    with pytest.raises(InvalidArgument):
        run(batch_import.import_batch, "socks.xlsx", make_xlsx([("Red", 80, 1)]))


def test_bad_row_rolls_back_whole_batch(run, stock):
    content = make_xlsx([("Red", 80, 3), ("Blue", "lots", 2)])

    with pytest.raises(BatchProcessingError) as exc_info:
        run(batch_import.import_batch, "socks.xlsx", content)

    assert "Row 3" in str(exc_info.value)
    assert stock() == {}


def test_color_must_be_text(run, stock):
    with pytest.raises(BatchProcessingError):
        run(batch_import.import_batch, "socks.xlsx", make_xlsx([(42, 80, 3)]))
    assert stock() == {}


def test_too_few_columns(run):
    content = make_xlsx([("Red", 80)], header=("color", "cottonPercentage"))
    with pytest.raises(BatchProcessingError):
        run(batch_import.import_batch, "socks.xlsx", content)


def test_unreadable_spreadsheet(run):
    with pytest.raises(BatchProcessingError):
        run(batch_import.import_batch, "socks.xlsx", b"definitely not a workbook")
