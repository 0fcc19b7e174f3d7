# stockkeeper/models/__init__.py
from .item import Item
from .purchase_order import PurchaseOrder
from .alert import Alert, AlertType
from .usage import Usage
from .user import User, UserRole
from .outbox import OutboxEvent
from .processed_event import ProcessedEvent

# Export all models
__all__ = [
    "Alert",
    "AlertType",
    "Item",
    "OutboxEvent",
    "ProcessedEvent",
    "PurchaseOrder",
    "Usage",
    "User",
    "UserRole",
]
