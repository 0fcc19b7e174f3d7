import logging
from enum import Enum
from fastapi import APIRouter, HTTPException, status
from stockkeeper.core.exceptions import InventoryError
from stockkeeper.schemas.purchase_order import (
    ArrivalRequest,
    PurchaseOrderRequest,
    PurchaseOrderResponse,
    PurchaseOrderUpdateRequest,
)
from stockkeeper.schemas.response import SuccessResponse
from stockkeeper.services import purchase_order_service
from typing import Optional
from uuid import UUID

router = APIRouter()
log = logging.getLogger("uvicorn")


class PurchaseOrderFilter(str, Enum):
    ALL = "all"
    PENDING = "pending"
    ARRIVED = "arrived"


def _po_data(purchase_order) -> dict:
    # item is prefetched by the list queries
    return PurchaseOrderResponse.from_model(purchase_order, purchase_order.item.name).model_dump(mode="json")


@router.get("/items/{item_id}/purchase-orders", response_model=SuccessResponse)
async def list_item_purchase_orders_endpoint(item_id: UUID):
    try:
        orders = await purchase_order_service.list_purchase_orders_for_item(item_id)
        return SuccessResponse(data=[_po_data(po) for po in orders])
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error listing purchase orders for item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list purchase orders.")


@router.post("/items/{item_id}/purchase-orders", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_purchase_order_endpoint(item_id: UUID, request_data: PurchaseOrderRequest):
    """Opens a purchase order; its quantity counts towards the item's pending units until it arrives."""
    try:
        purchase_order = await purchase_order_service.create_purchase_order(
            item_id,
            request_data.quantity,
            order_date=request_data.order_date,
            tracking_number=request_data.tracking_number,
            created_by=request_data.created_by,
        )
        return SuccessResponse(data=PurchaseOrderResponse.from_model(purchase_order).model_dump(mode="json"))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error creating purchase order for item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to create purchase order.")


@router.get("/items/{item_id}/purchase-orders/pending", response_model=SuccessResponse)
async def list_pending_purchase_orders_endpoint(item_id: UUID):
    try:
        orders = await purchase_order_service.list_purchase_orders_for_item(item_id, pending_only=True)
        return SuccessResponse(data=[_po_data(po) for po in orders])
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error listing pending purchase orders for item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list purchase orders.")


@router.get("/items/{item_id}/purchase-orders/pending-quantity", response_model=SuccessResponse)
async def pending_quantity_endpoint(item_id: UUID):
    try:
        pending = await purchase_order_service.get_pending_quantity(item_id)
        return SuccessResponse(data={"item_id": str(item_id), "pending_quantity": pending})
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error computing pending quantity for item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to compute pending quantity.")


@router.get("/purchase-orders", response_model=SuccessResponse)
async def list_purchase_orders_endpoint(status: PurchaseOrderFilter = PurchaseOrderFilter.ALL):
    arrived: Optional[bool] = None
    if status == PurchaseOrderFilter.PENDING:
        arrived = False
    elif status == PurchaseOrderFilter.ARRIVED:
        arrived = True
    try:
        orders = await purchase_order_service.list_purchase_orders(arrived=arrived)
        return SuccessResponse(data=[_po_data(po) for po in orders])
    except Exception as e:
        log.error(f"Error listing purchase orders: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list purchase orders.")


@router.put("/purchase-orders/{purchase_order_id}", response_model=SuccessResponse)
async def update_purchase_order_endpoint(purchase_order_id: UUID, request_data: PurchaseOrderUpdateRequest):
    try:
        purchase_order = await purchase_order_service.update_purchase_order(
            purchase_order_id,
            request_data.quantity,
            tracking_number=request_data.tracking_number,
            order_date=request_data.order_date,
            updated_by=request_data.updated_by,
        )
        return SuccessResponse(data=PurchaseOrderResponse.from_model(purchase_order).model_dump(mode="json"))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error updating purchase order {purchase_order_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update purchase order.")


@router.post("/purchase-orders/{purchase_order_id}/arrive", response_model=SuccessResponse)
async def mark_arrived_endpoint(purchase_order_id: UUID, request_data: Optional[ArrivalRequest] = None):
    """Marks the order as arrived and moves its quantity into current inventory. Arrival cannot be undone."""
    try:
        arrived_by = request_data.arrived_by if request_data else None
        purchase_order = await purchase_order_service.mark_purchase_order_arrived(
            purchase_order_id, arrived_by=arrived_by
        )
        log.info(f"Purchase order {purchase_order_id} marked arrived via API.")
        return SuccessResponse(data=PurchaseOrderResponse.from_model(purchase_order).model_dump(mode="json"))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error marking purchase order {purchase_order_id} arrived: {e}")
        raise HTTPException(status_code=500, detail="Server failed to mark purchase order arrived.")
