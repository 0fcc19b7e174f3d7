import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel
from stockkeeper.models.alert import AlertType
from stockkeeper.schemas.item import ItemSummary


class AlertResponse(BaseModel):
    """Alert with its snapshot values (as captured when the alert was opened)."""
    id: uuid.UUID
    item_id: uuid.UUID
    item: Optional[ItemSummary] = None
    alert_type: AlertType
    message: str
    current_inventory: int
    pending_po: int
    used_inventory: int
    safety_stock_threshold: int
    effective_inventory: int
    resolved: bool
    read: bool
    ignored: bool
    created_at: datetime
    resolved_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    ignored_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, alert, item=None) -> "AlertResponse":
        return cls(
            id=alert.id,
            item_id=alert.item_id,
            item=ItemSummary.model_validate(item) if item is not None else None,
            alert_type=alert.alert_type,
            message=alert.message,
            current_inventory=alert.current_inventory,
            pending_po=alert.pending_po,
            used_inventory=alert.used_inventory,
            safety_stock_threshold=alert.safety_stock_threshold,
            effective_inventory=alert.current_inventory + alert.pending_po,
            resolved=alert.resolved,
            read=alert.read,
            ignored=alert.ignored,
            created_at=alert.created_at,
            resolved_at=alert.resolved_at,
            read_at=alert.read_at,
            ignored_at=alert.ignored_at,
        )


class AlertCountResponse(BaseModel):
    active_alerts: int
    unread_alerts: int


class DigestResponse(BaseModel):
    recipients: int
    delivered: int
    failed: int
