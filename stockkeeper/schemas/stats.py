import datetime
import uuid
from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class ItemUsageSummary(BaseModel):
    item_id: uuid.UUID
    item_code: str
    item_name: str
    total_quantity_used: int
    usage_count: int


class UserUsageSummary(BaseModel):
    user_name: str
    total_quantity_used: int
    usage_count: int


class TopUsageItem(ItemUsageSummary):
    percentage: int = 0


class DailyUsage(BaseModel):
    date: datetime.date
    total_quantity_used: int


class LowStockItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    name: str
    current_inventory: int
    pending_po: int
    effective_inventory: int
    safety_stock_threshold: int


class QuickStatsResponse(BaseModel):
    department: Optional[str] = None
    total_items: int
    total_quantity: int
    average_quantity: float
    items_below_safety_stock: int
    critical_stock_items: int
    active_alerts: int
    daily_usage: List[DailyUsage]
    top_usage_items: List[TopUsageItem]
    low_stock_items: List[LowStockItem]
