# errors.py - failures the ledger and aggregator can report to the user


class InventoryError(Exception):
    """Base class; status_code is what the web layer answers with."""

    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(InventoryError):
    """Missing or malformed input, raised before any store call."""

    status_code = 400


class InsufficientStock(InventoryError):
    status_code = 409

    def __init__(self, requested, available):
        super().__init__(f"Only {available} items available (requested {requested}).")
        self.requested = requested
        self.available = available


class NotFound(InventoryError):
    status_code = 404


class ExternalStoreError(InventoryError):
    """The database read or write failed. Nothing local was changed."""

    status_code = 503


class UploadError(InventoryError):
    """Image could not be stored. Callers fall back to a placeholder."""

    status_code = 502
