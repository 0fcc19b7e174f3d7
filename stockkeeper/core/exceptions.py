from typing import Optional


class InventoryError(ValueError):
    """Base class for business failures returned to the caller as typed errors."""
    status_code = 400
    code = "inventory_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(InventoryError):
    status_code = 404
    code = "not_found"


class InvalidQuantityError(InventoryError):
    code = "invalid_quantity"


class InsufficientInventoryError(InventoryError):
    status_code = 409
    code = "insufficient_inventory"

    def __init__(self, available: int, requested: int, item_code: Optional[str] = None):
        label = f" for {item_code}" if item_code else ""
        super().__init__(f"Insufficient inventory{label}. Available: {available}, Requested: {requested}")
        self.available = available
        self.requested = requested


class AlreadyArrivedError(InventoryError):
    status_code = 409
    code = "already_arrived"


class NotificationDeliveryError(InventoryError):
    """Raised by a NotificationChannel. Absorbed by the dispatcher, never surfaced to ledger callers."""
    status_code = 502
    code = "notification_failed"

    def __init__(self, recipient: str, reason: str):
        super().__init__(f"Failed to deliver notification to {recipient}: {reason}")
        self.recipient = recipient


class ItemInUseError(InventoryError):
    status_code = 409
    code = "item_in_use"
