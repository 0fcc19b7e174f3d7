import pytest
from unittest.mock import AsyncMock, patch
from uuid import uuid4
from tortoise.exceptions import IntegrityError

from stockkeeper.consumers.alert_consumer import handle_alert_created
from stockkeeper.consumers.digest_scheduler import build_digest_scheduler, send_daily_digest
from stockkeeper.consumers.outbox_poller import poll_outbox_for_new_events
from stockkeeper.models.outbox import OutboxEvent
from stockkeeper.models.processed_event import ProcessedEvent
from stockkeeper.models.user import UserRole
from stockkeeper.notifications.dispatcher import NotificationDispatcher
from stockkeeper.services.inventory_service import create_item, record_usage
from stockkeeper.services.user_service import create_user
from fakes import FailingChannel


class TestOutboxPoller:

    @pytest.mark.asyncio
    async def test_alert_is_notified_exactly_once(self, db, engine, channel, dispatcher):
        await create_user("owner", "owner@example.com", "Owner", role=UserRole.OWNER)
        await create_user("alice", "alice@example.com", "Alice")
        await create_item("syr-05ml", "Syringe 5 ml", 100, current_inventory=10, barcode="S-1", engine=engine)

        assert await poll_outbox_for_new_events(dispatcher) == 1
        assert sorted(recipient for recipient, _ in channel.sent) == ["alice@example.com", "owner@example.com"]
        assert channel.sent[0][1].subject.startswith("[URGENT]")

        # nothing left to publish; a second pass sends nothing
        assert await poll_outbox_for_new_events(dispatcher) == 0
        assert len(channel.sent) == 2
        event = await OutboxEvent.all().first()
        assert event.published is True
        assert await ProcessedEvent.filter(event_id=str(event.id)).exists()

    @pytest.mark.asyncio
    async def test_unchanged_alert_is_not_notified_again(self, db, engine, channel, dispatcher):
        await create_item("gau", "Gauze", 100, current_inventory=50, barcode="G-1", engine=engine)
        await poll_outbox_for_new_events(dispatcher)

        await record_usage("G-1", "alice", 2, engine=engine)
        await poll_outbox_for_new_events(dispatcher)

        # only the fallback address, once
        assert [recipient for recipient, _ in channel.sent] == ["inventory-alerts@example.com"]

    @pytest.mark.asyncio
    async def test_delivery_failure_still_completes_event(self, db, engine):
        await create_item("gau", "Gauze", 100, current_inventory=50, engine=engine)
        dispatcher = NotificationDispatcher(FailingChannel(failing={"inventory-alerts@example.com"}))

        assert await poll_outbox_for_new_events(dispatcher) == 1
        assert (await OutboxEvent.all().first()).published is True

    @pytest.mark.asyncio
    async def test_handler_error_increments_attempts(self, db, engine, dispatcher):
        await create_item("gau", "Gauze", 100, current_inventory=50, engine=engine)

        with patch(
            "stockkeeper.consumers.outbox_poller.handle_alert_created",
            new=AsyncMock(side_effect=RuntimeError("db went away")),
        ):
            assert await poll_outbox_for_new_events(dispatcher) == 0

        event = await OutboxEvent.all().first()
        assert event.published is False
        assert event.attempts == 1


class TestAlertConsumer:

    @pytest.mark.asyncio
    async def test_duplicate_event_is_skipped(self, db, engine, channel, dispatcher):
        await create_item("gau", "Gauze", 100, current_inventory=50, engine=engine)
        event = await OutboxEvent.all().first()

        first = await handle_alert_created(event.payload, event.id, dispatcher=dispatcher, fallback_email="ops@example.com")
        second = await handle_alert_created(event.payload, event.id, dispatcher=dispatcher, fallback_email="ops@example.com")

        assert [r.recipient for r in first] == ["ops@example.com"]
        assert second == []
        assert len(channel.sent) == 1

    @pytest.mark.asyncio
    async def test_nothing_is_sent_when_claim_fails(self, db, engine, channel, dispatcher):
        await create_item("gau", "Gauze", 100, current_inventory=50, engine=engine)
        event = await OutboxEvent.all().first()

        with patch(
            "stockkeeper.consumers.alert_consumer.ProcessedEvent.create",
            new=AsyncMock(side_effect=RuntimeError("db went away")),
        ):
            with pytest.raises(RuntimeError):
                await handle_alert_created(event.payload, event.id, dispatcher=dispatcher)

        assert channel.sent == []

        # the retry delivers the alert
        await handle_alert_created(event.payload, event.id, dispatcher=dispatcher)
        assert len(channel.sent) == 1

    @pytest.mark.asyncio
    async def test_event_claimed_elsewhere_is_skipped(self, db, engine, channel, dispatcher):
        await create_item("gau", "Gauze", 100, current_inventory=50, engine=engine)
        event = await OutboxEvent.all().first()

        with patch(
            "stockkeeper.consumers.alert_consumer.ProcessedEvent.create",
            new=AsyncMock(side_effect=IntegrityError("UNIQUE constraint failed: processed_events.event_id")),
        ):
            results = await handle_alert_created(event.payload, event.id, dispatcher=dispatcher)

        assert results == []
        assert channel.sent == []

    @pytest.mark.asyncio
    async def test_missing_alert_is_marked_processed(self, db, dispatcher, channel):
        event_id = uuid4()
        results = await handle_alert_created({"alert_id": str(uuid4())}, event_id, dispatcher=dispatcher)

        assert results == []
        assert channel.sent == []
        assert await ProcessedEvent.filter(event_id=str(event_id)).exists()


class TestDigestScheduler:

    def test_jobs_are_registered(self):
        scheduler = build_digest_scheduler(hour=7, timezone="UTC")
        jobs = {job.id: job for job in scheduler.get_jobs()}

        assert set(jobs) == {"daily_alert_digest", "weekly_alert_digest"}
        assert "hour='7'" in str(jobs["daily_alert_digest"].trigger)
        assert "day_of_week='mon'" in str(jobs["weekly_alert_digest"].trigger)

    @pytest.mark.asyncio
    async def test_digest_job_swallows_errors(self):
        with patch(
            "stockkeeper.consumers.digest_scheduler.send_alert_digest",
            new=AsyncMock(side_effect=RuntimeError("smtp down")),
        ) as mock_digest:
            await send_daily_digest()

        mock_digest.assert_awaited_once_with("daily")
