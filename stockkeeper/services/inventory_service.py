import logging
import re
import zlib
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID, uuid4
from tortoise.expressions import Q
from tortoise.transactions import in_transaction
from stockkeeper.core.exceptions import (
    InsufficientInventoryError,
    InvalidQuantityError,
    InventoryError,
    ItemInUseError,
    NotFoundError,
)
from stockkeeper.models.alert import Alert
from stockkeeper.models.item import Item
from stockkeeper.models.purchase_order import PurchaseOrder
from stockkeeper.models.usage import Usage
from stockkeeper.services.alert_engine import AlertEngine, get_alert_engine

log = logging.getLogger("stockkeeper.inventory")

EDITABLE_ITEM_FIELDS = (
    "name",
    "description",
    "safety_stock_threshold",
    "barcode",
    "qr_code_id",
    "location",
    "department",
)

REQUIRED_ITEM_FIELDS = ("name", "safety_stock_threshold")


def _require_positive(quantity: int, label: str = "Quantity"):
    if quantity is None or quantity <= 0:
        raise InvalidQuantityError(f"{label} must be greater than 0")


def _require_text(value: Optional[str], label: str) -> str:
    if value is None or not value.strip():
        raise InventoryError(f"{label} is required")
    return value.strip()


# ---------------------------------------------------------------------------
# Row access (always inside a transaction)
# ---------------------------------------------------------------------------

async def lock_item(item_id: UUID, conn: Any) -> Item:
    """SELECT ... FOR UPDATE on the item row for the rest of the transaction."""
    item = await Item.filter(id=item_id).using_db(conn).select_for_update().first()
    if not item:
        raise NotFoundError(f"Item {item_id} not found")
    return item


async def lock_item_by_lookup_key(key: str, conn: Any) -> Item:
    """Resolves a scanned key: barcode first, then QR code id, then item code."""
    key = key.strip()
    for criteria in ({"barcode": key}, {"qr_code_id": key}, {"code": key.upper()}):
        item = await Item.filter(**criteria).using_db(conn).select_for_update().first()
        if item:
            return item
    raise NotFoundError(f"Item not found with barcode: {key}")


async def recompute_pending_po(item: Item, conn: Any) -> int:
    """Restores the invariant pending_po == sum of un-arrived PO quantities."""
    quantities = await (
        PurchaseOrder.filter(item_id=item.id, arrived=False)
        .using_db(conn)
        .values_list("quantity", flat=True)
    )
    item.pending_po = sum(quantities)
    await item.save(update_fields=["pending_po", "updated_at"], using_db=conn)
    return item.pending_po


# ---------------------------------------------------------------------------
# Ledger primitives: caller holds the item lock and passes its connection.
# Each one re-evaluates alerts before returning.
# ---------------------------------------------------------------------------

async def consume(item: Item, quantity: int, conn: Any, engine: AlertEngine) -> Optional[Alert]:
    _require_positive(quantity)
    if item.current_inventory < quantity:
        raise InsufficientInventoryError(item.current_inventory, quantity, item.code)

    item.current_inventory -= quantity
    item.used_inventory += quantity
    await item.save(update_fields=["current_inventory", "used_inventory", "updated_at"], using_db=conn)
    return await engine.evaluate(item, conn)


async def receive_purchase_order(item: Item, quantity: int, conn: Any, engine: AlertEngine) -> Optional[Alert]:
    _require_positive(quantity)
    item.current_inventory += quantity
    await item.save(update_fields=["current_inventory", "updated_at"], using_db=conn)
    await recompute_pending_po(item, conn)
    return await engine.evaluate(item, conn)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

async def record_usage(
    barcode: str,
    user_name: str,
    quantity: int,
    notes: Optional[str] = None,
    department: Optional[str] = None,
    engine: Optional[AlertEngine] = None,
) -> Usage:
    """Takes units out of stock for the item behind a scanned barcode / QR id / code."""
    barcode = _require_text(barcode, "Barcode")
    user_name = _require_text(user_name, "User name")
    _require_positive(quantity, "Quantity used")
    engine = engine or get_alert_engine()

    async with in_transaction() as conn:
        item = await lock_item_by_lookup_key(barcode, conn)
        old_inventory = item.current_inventory
        await consume(item, quantity, conn, engine)

        usage = await Usage.create(
            item=item,
            user_name=user_name,
            quantity_used=quantity,
            used_at=engine.clock(),
            notes=notes.strip() if notes else None,
            department=department.strip() if department else None,
            barcode=barcode,
            using_db=conn,
        )

    log.info(f"Usage recorded: {user_name} took {quantity} of {item.code} ({old_inventory} -> {item.current_inventory})")
    return usage


async def add_pending_quantity(item_id: UUID, quantity: int, engine: Optional[AlertEngine] = None) -> Item:
    """Manual PO-less pending addition. The next PO recompute replaces this value."""
    _require_positive(quantity)
    engine = engine or get_alert_engine()
    async with in_transaction() as conn:
        item = await lock_item(item_id, conn)
        item.pending_po += quantity
        await item.save(update_fields=["pending_po", "updated_at"], using_db=conn)
        await engine.evaluate(item, conn)
    return item


async def confirm_restock(item_id: UUID, received_quantity: int, engine: Optional[AlertEngine] = None) -> Item:
    _require_positive(received_quantity, "Received quantity")
    engine = engine or get_alert_engine()
    async with in_transaction() as conn:
        item = await lock_item(item_id, conn)
        item.current_inventory += received_quantity
        item.pending_po = max(0, item.pending_po - received_quantity)
        await item.save(update_fields=["current_inventory", "pending_po", "updated_at"], using_db=conn)
        await engine.evaluate(item, conn)
    log.info(f"Restock confirmed for {item.code}: +{received_quantity}, pending now {item.pending_po}")
    return item


async def adjust_inventory(item_id: UUID, counted_quantity: int, engine: Optional[AlertEngine] = None) -> Item:
    """Stock-take correction: sets the on-hand count to what was physically counted."""
    if counted_quantity is None or counted_quantity < 0:
        raise InvalidQuantityError("Counted quantity cannot be negative")
    engine = engine or get_alert_engine()
    async with in_transaction() as conn:
        item = await lock_item(item_id, conn)
        previous = item.current_inventory
        item.current_inventory = counted_quantity
        await item.save(update_fields=["current_inventory", "updated_at"], using_db=conn)
        await engine.evaluate(item, conn)
    log.info(f"Inventory of {item.code} adjusted {previous} -> {counted_quantity}")
    return item


# ---------------------------------------------------------------------------
# Item CRUD
# ---------------------------------------------------------------------------

async def _ensure_unique_keys(conn: Any, exclude_id: Optional[UUID] = None, **keys):
    for field, value in keys.items():
        if not value:
            continue
        query = Item.filter(**{field: value}).using_db(conn)
        if exclude_id:
            query = query.exclude(id=exclude_id)
        if await query.exists():
            raise InventoryError(f"An item with {field} '{value}' already exists")


def barcode_from_code(code: str) -> str:
    """
    Deterministic barcode for an item code: the alphanumeric part of the code
    followed by a CRC-based check number. Codes of 8+ characters are cut to 8
    and get 3 check digits, shorter ones get 6.
    """
    clean = re.sub(r"[^A-Z0-9]", "", code.upper())
    checksum = zlib.crc32(clean.encode("utf-8"))
    if len(clean) >= 8:
        return f"{clean[:8]}{checksum % 1000:03d}"
    return f"{clean}{checksum % 1000000:06d}"


def generate_qr_code_id() -> str:
    return str(uuid4())


async def _unique_barcode(code: str, conn: Any) -> str:
    base = barcode_from_code(code)
    candidate, suffix = base, 1
    while await Item.filter(barcode=candidate).using_db(conn).exists():
        candidate = f"{base}{suffix}"
        suffix += 1
    return candidate


async def create_item(
    code: str,
    name: str,
    safety_stock_threshold: int,
    current_inventory: int = 0,
    description: Optional[str] = None,
    barcode: Optional[str] = None,
    qr_code_id: Optional[str] = None,
    location: Optional[str] = None,
    department: Optional[str] = None,
    engine: Optional[AlertEngine] = None,
) -> Item:
    code = _require_text(code, "Item code").upper()
    name = _require_text(name, "Item name")
    if current_inventory < 0 or safety_stock_threshold < 0:
        raise InvalidQuantityError("Inventory and safety stock threshold cannot be negative")
    engine = engine or get_alert_engine()

    async with in_transaction() as conn:
        await _ensure_unique_keys(conn, code=code, barcode=barcode, qr_code_id=qr_code_id)
        # Scan keys are assigned when the caller does not bring its own
        barcode = barcode or await _unique_barcode(code, conn)
        qr_code_id = qr_code_id or generate_qr_code_id()
        item = await Item.create(
            code=code,
            name=name,
            description=description,
            current_inventory=current_inventory,
            safety_stock_threshold=safety_stock_threshold,
            barcode=barcode,
            qr_code_id=qr_code_id,
            location=location,
            department=department,
            using_db=conn,
        )
        # pending_po starts at 0 and only ever comes from purchase orders
        await engine.evaluate(item, conn)

    log.info(f"Item {item.code} created with {current_inventory} on hand, threshold {safety_stock_threshold}")
    return item


async def update_item(item_id: UUID, engine: Optional[AlertEngine] = None, **changes) -> Item:
    """Updates descriptive fields and the threshold. Ledger counters are not editable here."""
    unknown = set(changes) - set(EDITABLE_ITEM_FIELDS)
    if unknown:
        raise InventoryError(f"Fields not editable: {', '.join(sorted(unknown))}")
    for field in REQUIRED_ITEM_FIELDS:
        if field in changes and changes[field] is None:
            raise InventoryError(f"Field '{field}' cannot be null")
    if "name" in changes:
        changes["name"] = _require_text(changes["name"], "Item name")
    if changes.get("safety_stock_threshold") is not None and changes["safety_stock_threshold"] < 0:
        raise InvalidQuantityError("Safety stock threshold cannot be negative")
    engine = engine or get_alert_engine()

    async with in_transaction() as conn:
        item = await lock_item(item_id, conn)
        await _ensure_unique_keys(
            conn, exclude_id=item.id, barcode=changes.get("barcode"), qr_code_id=changes.get("qr_code_id")
        )
        threshold_changed = (
            "safety_stock_threshold" in changes
            and changes["safety_stock_threshold"] != item.safety_stock_threshold
        )
        for field, value in changes.items():
            setattr(item, field, value)
        if changes:
            await item.save(update_fields=list(changes) + ["updated_at"], using_db=conn)
        if threshold_changed:
            await engine.evaluate(item, conn)
    return item


async def delete_item(item_id: UUID):
    """Deletes an item with its alerts and purchase orders. Items with recorded usage are kept."""
    async with in_transaction() as conn:
        item = await lock_item(item_id, conn)
        if await Usage.filter(item_id=item.id).using_db(conn).exists():
            raise ItemInUseError(f"Item {item.code} has recorded usage and cannot be deleted")
        await item.delete(using_db=conn)
    log.info(f"Item {item.code} deleted")


async def get_item(item_id: UUID) -> Item:
    item = await Item.get_or_none(id=item_id)
    if not item:
        raise NotFoundError(f"Item {item_id} not found")
    return item


async def lookup_item(key: str) -> Item:
    key = _require_text(key, "Lookup key")
    item = await Item.filter(
        Q(barcode=key) | Q(qr_code_id=key) | Q(code=key.upper())
    ).first()
    if not item:
        raise NotFoundError(f"Item not found with barcode: {key}")
    return item


async def list_items(department: Optional[str] = None, needs_restock: Optional[bool] = None) -> List[Item]:
    query = Item.all().order_by("code")
    if department:
        query = query.filter(department=department)
    items = await query
    if needs_restock is not None:
        items = [item for item in items if item.needs_restock == needs_restock]
    return items


async def list_usage(
    item_id: Optional[UUID] = None,
    user_name: Optional[str] = None,
    department: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Usage]:
    query = Usage.all()
    if item_id:
        query = query.filter(item_id=item_id)
    if user_name:
        query = query.filter(user_name=user_name)
    if department:
        query = query.filter(department=department)
    if start:
        query = query.filter(used_at__gte=start)
    if end:
        query = query.filter(used_at__lte=end)
    return await query.order_by("-used_at").offset(offset).limit(limit).prefetch_related("item")
