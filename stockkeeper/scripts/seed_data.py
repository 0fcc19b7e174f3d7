# scripts/seed_data.py
import asyncio
import logging
from stockkeeper.core.config import LOG_LEVEL
from stockkeeper.core.db import init_db, close_db
from stockkeeper.core.exceptions import InventoryError
from stockkeeper.models.item import Item
from stockkeeper.models.user import User, UserRole
from stockkeeper.services.inventory_service import create_item
from stockkeeper.services.purchase_order_service import create_purchase_order
from stockkeeper.services.user_service import create_user

log = logging.getLogger("seed_data")

ITEMS = [
    # code, name, on hand, threshold, barcode, department
    ("GLV-NIT-M", "Nitrile Gloves (M)", 400, 150, "0012345000017", "Clinical"),
    ("SYR-05ML", "Syringe 5 ml", 60, 100, "0012345000024", "Clinical"),
    ("GAU-4X4", "Gauze Pad 4x4", 15, 120, "0012345000031", "Clinical"),
    ("PAP-A4", "Printer Paper A4", 30, 20, "0012345000048", "Front Desk"),
]

USERS = [
    ("owner", "owner@example.com", "Clinic Owner", UserRole.OWNER, True),
    ("manager", "manager@example.com", "Office Manager", UserRole.ADMIN, True),
    ("assistant", "assistant@example.com", "Dental Assistant", UserRole.USER, False),
]


async def seed():
    for username, email, full_name, role, digest in USERS:
        if await User.exists(username=username):
            continue
        await create_user(username, email, full_name, role=role, enable_daily_digest=digest)

    for code, name, on_hand, threshold, barcode, department in ITEMS:
        if await Item.exists(code=code):
            continue
        try:
            await create_item(
                code=code,
                name=name,
                current_inventory=on_hand,
                safety_stock_threshold=threshold,
                barcode=barcode,
                department=department,
            )
        except InventoryError as e:
            log.warning(f"Skipping {code}: {e.message}")

    # one open purchase order so the pending column is populated
    syringes = await Item.get(code="SYR-05ML")
    if syringes.pending_po == 0:
        await create_purchase_order(syringes.id, 50, tracking_number="1Z-DEMO-0001", created_by="manager")

    log.info("Seed data loaded.")

async def main():
    await init_db()
    try:
        await seed()
    finally:
        await close_db()

if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    asyncio.run(main())
