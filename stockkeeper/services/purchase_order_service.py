import logging
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID
from tortoise.transactions import in_transaction
from stockkeeper.core.exceptions import AlreadyArrivedError, InvalidQuantityError, NotFoundError
from stockkeeper.models.item import Item
from stockkeeper.models.purchase_order import PurchaseOrder
from stockkeeper.services.alert_engine import AlertEngine, get_alert_engine
from stockkeeper.services.inventory_service import get_item, lock_item, receive_purchase_order, recompute_pending_po

log = logging.getLogger("stockkeeper.purchase_orders")


async def _lock_purchase_order(purchase_order_id: UUID, conn: Any) -> PurchaseOrder:
    purchase_order = await PurchaseOrder.filter(id=purchase_order_id).using_db(conn).select_for_update().first()
    if not purchase_order:
        raise NotFoundError(f"Purchase Order {purchase_order_id} not found")
    return purchase_order


async def create_purchase_order(
    item_id: UUID,
    quantity: int,
    order_date: Optional[datetime] = None,
    tracking_number: Optional[str] = None,
    created_by: Optional[str] = None,
    engine: Optional[AlertEngine] = None,
) -> PurchaseOrder:
    if quantity is None or quantity <= 0:
        raise InvalidQuantityError("Purchase order quantity must be greater than 0")
    engine = engine or get_alert_engine()

    async with in_transaction() as conn:
        item = await lock_item(item_id, conn)
        purchase_order = await PurchaseOrder.create(
            item=item,
            quantity=quantity,
            order_date=order_date or engine.clock(),
            tracking_number=tracking_number,
            created_by=created_by,
            using_db=conn,
        )
        await recompute_pending_po(item, conn)
        await engine.evaluate(item, conn)

    log.info(f"PO {purchase_order.id} created for {item.code}: {quantity} units, pending now {item.pending_po}")
    return purchase_order


async def update_purchase_order(
    purchase_order_id: UUID,
    quantity: int,
    tracking_number: Optional[str] = None,
    order_date: Optional[datetime] = None,
    updated_by: Optional[str] = None,
    engine: Optional[AlertEngine] = None,
) -> PurchaseOrder:
    """Edits a PO that has not arrived. pending_po is only recomputed when the quantity changes."""
    if quantity is None or quantity <= 0:
        raise InvalidQuantityError("Purchase order quantity must be greater than 0")
    engine = engine or get_alert_engine()

    async with in_transaction() as conn:
        purchase_order = await _lock_purchase_order(purchase_order_id, conn)
        if purchase_order.arrived:
            raise AlreadyArrivedError("Cannot edit arrived Purchase Order")

        old_quantity = purchase_order.quantity
        purchase_order.quantity = quantity
        if tracking_number is not None:
            purchase_order.tracking_number = tracking_number
        if order_date is not None:
            purchase_order.order_date = order_date
        if updated_by is not None:
            purchase_order.updated_by = updated_by
        await purchase_order.save(using_db=conn)

        item = await lock_item(purchase_order.item_id, conn)
        if old_quantity != quantity:
            await recompute_pending_po(item, conn)
        await engine.evaluate(item, conn)

    return purchase_order


async def mark_purchase_order_arrived(
    purchase_order_id: UUID,
    arrived_by: Optional[str] = None,
    engine: Optional[AlertEngine] = None,
) -> PurchaseOrder:
    """
    Arrival is one-way: flag + arrival date, quantity into current inventory,
    pending recompute and alert evaluation all commit together.
    """
    engine = engine or get_alert_engine()

    async with in_transaction() as conn:
        purchase_order = await _lock_purchase_order(purchase_order_id, conn)
        if purchase_order.arrived:
            raise AlreadyArrivedError("Purchase Order already arrived")

        purchase_order.arrived = True
        purchase_order.arrival_date = engine.clock()
        purchase_order.arrived_by = arrived_by
        await purchase_order.save(
            update_fields=["arrived", "arrival_date", "arrived_by", "updated_at"], using_db=conn
        )

        item = await lock_item(purchase_order.item_id, conn)
        await receive_purchase_order(item, purchase_order.quantity, conn, engine)

    log.info(f"PO {purchase_order.id} arrived: +{purchase_order.quantity} {item.code}, on hand {item.current_inventory}")
    return purchase_order


async def get_purchase_order(purchase_order_id: UUID) -> PurchaseOrder:
    purchase_order = await PurchaseOrder.get_or_none(id=purchase_order_id).prefetch_related("item")
    if not purchase_order:
        raise NotFoundError(f"Purchase Order {purchase_order_id} not found")
    return purchase_order


async def list_purchase_orders_for_item(item_id: UUID, pending_only: bool = False) -> List[PurchaseOrder]:
    item: Item = await get_item(item_id)
    query = PurchaseOrder.filter(item_id=item.id)
    if pending_only:
        query = query.filter(arrived=False)
    return await query.order_by("-order_date").prefetch_related("item")


async def list_purchase_orders(arrived: Optional[bool] = None) -> List[PurchaseOrder]:
    query = PurchaseOrder.all()
    if arrived is not None:
        query = query.filter(arrived=arrived)
    return await query.order_by("-order_date").prefetch_related("item")


async def get_pending_quantity(item_id: UUID) -> int:
    item = await get_item(item_id)
    quantities = await PurchaseOrder.filter(item_id=item.id, arrived=False).values_list("quantity", flat=True)
    return sum(quantities)
