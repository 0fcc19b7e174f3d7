import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ItemCreateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64, description="Unique item code (stored uppercase).")
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    current_inventory: int = Field(0, ge=0, description="Units on hand.")
    safety_stock_threshold: int = Field(..., ge=0, description="Effective inventory below this triggers an alert.")
    barcode: Optional[str] = Field(None, max_length=128)
    qr_code_id: Optional[str] = Field(None, max_length=128)
    location: Optional[str] = None
    department: Optional[str] = None


class ItemUpdateRequest(BaseModel):
    """Only supplied fields are changed. Ledger counters move through the stock endpoints."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    safety_stock_threshold: Optional[int] = Field(None, ge=0)
    barcode: Optional[str] = Field(None, max_length=128)
    qr_code_id: Optional[str] = Field(None, max_length=128)
    location: Optional[str] = None
    department: Optional[str] = None


class QuantityRequest(BaseModel):
    quantity: int = Field(..., gt=0)


class StockCountRequest(BaseModel):
    counted_quantity: int = Field(..., ge=0, description="Physically counted units on hand.")


class ItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    name: str
    description: Optional[str] = None
    current_inventory: int
    used_inventory: int
    pending_po: int
    safety_stock_threshold: int
    effective_inventory: int
    available_quantity: int
    needs_restock: bool
    barcode: Optional[str] = None
    qr_code_id: Optional[str] = None
    location: Optional[str] = None
    department: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ItemSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    name: str
    barcode: Optional[str] = None
