import logging
from fastapi import APIRouter, HTTPException, status
from stockkeeper.core.exceptions import InventoryError
from stockkeeper.schemas.item import (
    ItemCreateRequest,
    ItemResponse,
    ItemUpdateRequest,
    QuantityRequest,
    StockCountRequest,
)
from stockkeeper.schemas.response import MessageData, SuccessResponse
from stockkeeper.services import inventory_service
from typing import Optional
from uuid import UUID

router = APIRouter()
log = logging.getLogger("uvicorn")


def _item_data(item) -> dict:
    return ItemResponse.model_validate(item).model_dump(mode="json")


@router.get("/", response_model=SuccessResponse)
async def list_items_endpoint(department: Optional[str] = None, needs_restock: Optional[bool] = None):
    """Lists items, optionally only one department or only those below their threshold."""
    try:
        items = await inventory_service.list_items(department=department, needs_restock=needs_restock)
        return SuccessResponse(data=[_item_data(item) for item in items])
    except Exception as e:
        log.error(f"Error listing items: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list items.")


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_item_endpoint(request_data: ItemCreateRequest):
    try:
        item = await inventory_service.create_item(**request_data.model_dump())
        log.info(f"Item {item.code} created via API.")
        return SuccessResponse(data=_item_data(item))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error creating item: {e}")
        raise HTTPException(status_code=500, detail="Server failed to create item.")


@router.get("/lookup/{key}", response_model=SuccessResponse)
async def lookup_item_endpoint(key: str):
    """Finds an item by barcode, QR code id or item code."""
    try:
        item = await inventory_service.lookup_item(key)
        return SuccessResponse(data=_item_data(item))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error looking up item '{key}': {e}")
        raise HTTPException(status_code=500, detail="Server failed to look up item.")


@router.get("/{item_id}", response_model=SuccessResponse)
async def get_item_endpoint(item_id: UUID):
    try:
        item = await inventory_service.get_item(item_id)
        return SuccessResponse(data=_item_data(item))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error fetching item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch item.")


@router.put("/{item_id}", response_model=SuccessResponse)
async def update_item_endpoint(item_id: UUID, request_data: ItemUpdateRequest):
    try:
        changes = request_data.model_dump(exclude_unset=True)
        item = await inventory_service.update_item(item_id, **changes)
        return SuccessResponse(data=_item_data(item))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error updating item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update item.")


@router.delete("/{item_id}", response_model=SuccessResponse)
async def delete_item_endpoint(item_id: UUID):
    try:
        await inventory_service.delete_item(item_id)
        return SuccessResponse(data=MessageData(message=f"Item {item_id} deleted.").model_dump())
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error deleting item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to delete item.")


@router.post("/{item_id}/pending", response_model=SuccessResponse)
async def add_pending_endpoint(item_id: UUID, request_data: QuantityRequest):
    """Adds units expected from a supplier without a purchase order record."""
    try:
        item = await inventory_service.add_pending_quantity(item_id, request_data.quantity)
        return SuccessResponse(data=_item_data(item))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error adding pending quantity to {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to add pending quantity.")


@router.post("/{item_id}/restock", response_model=SuccessResponse)
async def confirm_restock_endpoint(item_id: UUID, request_data: QuantityRequest):
    try:
        item = await inventory_service.confirm_restock(item_id, request_data.quantity)
        return SuccessResponse(data=_item_data(item))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error confirming restock for {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to confirm restock.")


@router.post("/{item_id}/adjust", response_model=SuccessResponse)
async def adjust_inventory_endpoint(item_id: UUID, request_data: StockCountRequest):
    try:
        item = await inventory_service.adjust_inventory(item_id, request_data.counted_quantity)
        return SuccessResponse(data=_item_data(item))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error adjusting inventory for {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to adjust inventory.")
