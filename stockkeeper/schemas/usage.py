import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UsageRequest(BaseModel):
    barcode: str = Field(..., min_length=1, description="Scanned barcode, QR code id or item code.")
    user_name: str = Field(..., min_length=1)
    quantity_used: int = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=500)
    department: Optional[str] = Field(None, max_length=64)


class UsageResponse(BaseModel):
    id: uuid.UUID
    item_id: uuid.UUID
    item_code: Optional[str] = None
    item_name: Optional[str] = None
    user_name: str
    quantity_used: int
    used_at: datetime
    notes: Optional[str] = None
    department: Optional[str] = None
    barcode: str

    @classmethod
    def from_model(cls, usage, item=None) -> "UsageResponse":
        return cls(
            id=usage.id,
            item_id=usage.item_id,
            item_code=item.code if item is not None else None,
            item_name=item.name if item is not None else None,
            user_name=usage.user_name,
            quantity_used=usage.quantity_used,
            used_at=usage.used_at,
            notes=usage.notes,
            department=usage.department,
            barcode=usage.barcode,
        )
