import logging
from datetime import datetime
from fastapi import APIRouter, HTTPException, Query, status
from stockkeeper.core.exceptions import InventoryError
from stockkeeper.schemas.response import SuccessResponse
from stockkeeper.schemas.stats import ItemUsageSummary, UserUsageSummary
from stockkeeper.schemas.usage import UsageRequest, UsageResponse
from stockkeeper.services import inventory_service, stats_service
from typing import Optional
from uuid import UUID

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.post("/record", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def record_usage_endpoint(request_data: UsageRequest):
    """
    Records units taken out of stock for a scanned item. Fails with 409 and
    changes nothing when the item does not hold enough units.
    """
    try:
        usage = await inventory_service.record_usage(
            barcode=request_data.barcode,
            user_name=request_data.user_name,
            quantity=request_data.quantity_used,
            notes=request_data.notes,
            department=request_data.department,
        )
        return SuccessResponse(data=UsageResponse.from_model(usage).model_dump(mode="json"))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error recording usage for '{request_data.barcode}': {e}")
        raise HTTPException(status_code=500, detail="Server failed to record usage.")


@router.get("/summary/items", response_model=SuccessResponse)
async def usage_summary_by_item_endpoint(
    department: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
):
    """Units used and number of usage records per item, heaviest first."""
    try:
        summary = await stats_service.usage_summary_by_item(department=department, start=start, end=end)
        return SuccessResponse(data=[ItemUsageSummary(**entry).model_dump(mode="json") for entry in summary])
    except Exception as e:
        log.error(f"Error summarizing usage by item: {e}")
        raise HTTPException(status_code=500, detail="Server failed to summarize usage by item.")


@router.get("/summary/users", response_model=SuccessResponse)
async def usage_summary_by_user_endpoint(
    department: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
):
    try:
        summary = await stats_service.usage_summary_by_user(department=department, start=start, end=end)
        return SuccessResponse(data=[UserUsageSummary(**entry).model_dump() for entry in summary])
    except Exception as e:
        log.error(f"Error summarizing usage by user: {e}")
        raise HTTPException(status_code=500, detail="Server failed to summarize usage by user.")


@router.get("/", response_model=SuccessResponse)
async def list_usage_endpoint(
    item_id: Optional[UUID] = None,
    user_name: Optional[str] = None,
    department: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    try:
        records = await inventory_service.list_usage(
            item_id=item_id,
            user_name=user_name,
            department=department,
            start=start,
            end=end,
            limit=limit,
            offset=offset,
        )
        data = [UsageResponse.from_model(usage, usage.item).model_dump(mode="json") for usage in records]
        return SuccessResponse(data=data)
    except Exception as e:
        log.error(f"Error listing usage: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list usage.")
