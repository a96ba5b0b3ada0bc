"""Errors raised by the inventory rules.

Every error carries the HTTP status the API answers with; ``main.py`` renders
them as ``{"detail": message}``.
"""

from fastapi import status


class InventoryError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingArgument(InventoryError):
    """A required input was absent."""


class InvalidArgument(InventoryError):
    """An input was present but not acceptable."""


class InvalidQuantity(InvalidArgument):
    pass


class InvalidFormat(InvalidArgument):
    pass


class NotFound(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND


class InsufficientStock(InventoryError):
    status_code = status.HTTP_409_CONFLICT


class StorageFailure(InventoryError):
    status_code = status.HTTP_409_CONFLICT


class BatchProcessingError(InventoryError):
    """A spreadsheet row could not be read; the whole batch is rolled back."""
