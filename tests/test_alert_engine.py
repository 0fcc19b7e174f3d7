import pytest
from tortoise.transactions import in_transaction

from stockkeeper.core.clock import as_utc
from stockkeeper.events.outbox_utility import ALERT_CREATED
from stockkeeper.models.alert import Alert, AlertType
from stockkeeper.models.item import Item
from stockkeeper.models.outbox import OutboxEvent
from stockkeeper.services.inventory_service import record_usage
from stockkeeper.services.purchase_order_service import create_purchase_order, mark_purchase_order_arrived


async def evaluate(engine, item):
    async with in_transaction() as conn:
        return await engine.evaluate(item, conn)


class TestAlertEngine:

    @pytest.mark.asyncio
    async def test_no_alert_at_or_above_threshold(self, make_item, engine):
        item = await make_item(current_inventory=100, threshold=100)
        assert await evaluate(engine, item) is None
        assert await Alert.all().count() == 0

    @pytest.mark.asyncio
    async def test_opens_single_alert_with_snapshot(self, make_item, engine, clock):
        item = await make_item(current_inventory=30, pending_po=10, threshold=100)
        item.used_inventory = 7

        alert = await evaluate(engine, item)

        assert alert.alert_type == AlertType.WARNING_STOCK
        assert (alert.current_inventory, alert.pending_po, alert.used_inventory) == (30, 10, 7)
        assert alert.safety_stock_threshold == 100
        assert alert.resolved is False
        stored = await Alert.get(id=alert.id)
        assert as_utc(stored.created_at) == clock()

    @pytest.mark.asyncio
    async def test_critical_when_effective_below_a_fifth(self, make_item, engine):
        item = await make_item(current_inventory=19, threshold=100)
        alert = await evaluate(engine, item)
        assert alert.alert_type == AlertType.CRITICAL_STOCK

    @pytest.mark.asyncio
    async def test_alert_creation_writes_outbox_event(self, make_item, engine):
        item = await make_item(current_inventory=10, threshold=100)
        alert = await evaluate(engine, item)

        event = await OutboxEvent.get(aggregate_id=alert.id)
        assert event.event_type == ALERT_CREATED
        assert event.payload == {
            "alert_id": str(alert.id),
            "item_id": str(item.id),
            "alert_type": "CRITICAL_STOCK",
        }
        assert event.published is False

    @pytest.mark.asyncio
    async def test_small_fluctuation_is_idempotent(self, make_item, engine):
        item = await make_item(current_inventory=50, threshold=100)
        await evaluate(engine, item)

        item.current_inventory = 45
        assert await evaluate(engine, item) is None
        assert await Alert.all().count() == 1
        assert await OutboxEvent.all().count() == 1

    @pytest.mark.asyncio
    async def test_stale_alert_is_replaced(self, make_item, engine, clock):
        item = await make_item(current_inventory=50, threshold=100)
        first = await evaluate(engine, item)

        clock.advance(hours=25)
        second = await evaluate(engine, item)

        assert second is not None and second.id != first.id
        first = await Alert.get(id=first.id)
        assert first.resolved is True
        assert as_utc(first.resolved_at) == clock()
        assert await Alert.filter(item_id=item.id, resolved=False).count() == 1

    @pytest.mark.asyncio
    async def test_recovery_resolves_every_open_alert(self, make_item, engine):
        item = await make_item(current_inventory=10, threshold=100)
        # two open alerts left over from an inconsistent state
        await evaluate(engine, item)
        await Alert.create(
            item=item,
            alert_type=AlertType.WARNING_STOCK,
            message="stray",
            current_inventory=60,
            pending_po=0,
            used_inventory=0,
            safety_stock_threshold=100,
            created_at=engine.clock(),
        )

        item.current_inventory = 100
        assert await evaluate(engine, item) is None
        assert await Alert.filter(resolved=False).count() == 0
        assert await Alert.filter(resolved=True).count() == 2

    @pytest.mark.asyncio
    async def test_threshold_change_reevaluates_against_live_values(self, make_item, engine):
        item = await make_item(current_inventory=50, threshold=40)
        assert await evaluate(engine, item) is None

        item.safety_stock_threshold = 60
        alert = await evaluate(engine, item)
        assert alert.alert_type == AlertType.WARNING_STOCK
        assert alert.safety_stock_threshold == 60


class TestLedgerScenario:

    @pytest.mark.asyncio
    async def test_consume_then_restock_through_purchase_order(self, make_item, engine):
        item = await make_item(code="SYR-05ML", current_inventory=50, threshold=100, barcode="0012345000024")

        await record_usage("0012345000024", "alice", 10, engine=engine)
        open_alerts = await Alert.filter(item_id=item.id, resolved=False)
        assert [a.alert_type for a in open_alerts] == [AlertType.WARNING_STOCK]
        assert open_alerts[0].current_inventory == 40

        await record_usage("0012345000024", "alice", 35, engine=engine)
        open_alerts = await Alert.filter(item_id=item.id, resolved=False)
        assert [a.alert_type for a in open_alerts] == [AlertType.CRITICAL_STOCK]
        assert open_alerts[0].current_inventory == 5
        assert await Alert.filter(item_id=item.id, resolved=True).count() == 1

        po = await create_purchase_order(item.id, 200, engine=engine)
        await mark_purchase_order_arrived(po.id, arrived_by="bob", engine=engine)

        item = await Item.get(id=item.id)
        assert item.current_inventory == 205
        assert item.pending_po == 0
        assert item.used_inventory == 45
        assert await Alert.filter(item_id=item.id, resolved=False).count() == 0
        assert await Alert.filter(item_id=item.id).count() == 2
