import logging
from datetime import datetime
from fastapi import APIRouter, HTTPException, Query
from stockkeeper.schemas.response import SuccessResponse
from stockkeeper.schemas.stats import LowStockItem, QuickStatsResponse, TopUsageItem
from stockkeeper.services import stats_service
from typing import Optional

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.get("/quick", response_model=SuccessResponse)
async def quick_stats_endpoint(department: Optional[str] = None):
    """Item totals, stock coverage, active alerts and recent usage, optionally for one department."""
    try:
        stats = await stats_service.quick_stats(department=department)
        stats["low_stock_items"] = [LowStockItem.model_validate(item) for item in stats["low_stock_items"]]
        return SuccessResponse(data=QuickStatsResponse(**stats).model_dump(mode="json"))
    except Exception as e:
        log.error(f"Error building quick stats: {e}")
        raise HTTPException(status_code=500, detail="Server failed to build quick stats.")


@router.get("/low-stock", response_model=SuccessResponse)
async def low_stock_endpoint(department: Optional[str] = None):
    try:
        items = await stats_service.low_stock_items(department=department)
        return SuccessResponse(data=[LowStockItem.model_validate(item).model_dump(mode="json") for item in items])
    except Exception as e:
        log.error(f"Error listing low stock items: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list low stock items.")


@router.get("/top-usage", response_model=SuccessResponse)
async def top_usage_endpoint(
    limit: int = Query(5, ge=1, le=50),
    department: Optional[str] = None,
    start: Optional[datetime] = None,
):
    try:
        top = await stats_service.top_usage_items(limit=limit, department=department, start=start)
        return SuccessResponse(data=[TopUsageItem(**entry).model_dump(mode="json") for entry in top])
    except Exception as e:
        log.error(f"Error listing top usage items: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list top usage items.")
