import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class PurchaseOrderRequest(BaseModel):
    quantity: int = Field(..., gt=0, description="Ordered units.")
    order_date: Optional[datetime] = None
    tracking_number: Optional[str] = Field(None, max_length=128)
    created_by: Optional[str] = None


class PurchaseOrderUpdateRequest(BaseModel):
    quantity: int = Field(..., gt=0)
    order_date: Optional[datetime] = None
    tracking_number: Optional[str] = Field(None, max_length=128)
    updated_by: Optional[str] = None


class ArrivalRequest(BaseModel):
    arrived_by: Optional[str] = None


class PurchaseOrderResponse(BaseModel):
    id: uuid.UUID
    item_id: uuid.UUID
    item_name: Optional[str] = None
    quantity: int
    order_date: datetime
    arrival_date: Optional[datetime] = None
    tracking_number: Optional[str] = None
    arrived: bool
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    arrived_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, purchase_order, item_name: Optional[str] = None) -> "PurchaseOrderResponse":
        return cls(
            id=purchase_order.id,
            item_id=purchase_order.item_id,
            item_name=item_name,
            quantity=purchase_order.quantity,
            order_date=purchase_order.order_date,
            arrival_date=purchase_order.arrival_date,
            tracking_number=purchase_order.tracking_number,
            arrived=purchase_order.arrived,
            created_by=purchase_order.created_by,
            updated_by=purchase_order.updated_by,
            arrived_by=purchase_order.arrived_by,
            created_at=purchase_order.created_at,
            updated_at=purchase_order.updated_at,
        )
