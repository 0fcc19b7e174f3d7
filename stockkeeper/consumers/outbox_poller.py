import asyncio
import logging
from typing import Optional
from stockkeeper.models.outbox import OutboxEvent
from stockkeeper.consumers.alert_consumer import handle_alert_created
from stockkeeper.core.db import init_db, close_db
from stockkeeper.core.config import POLLING_INTERVAL, MAX_ATTEMPTS, BATCH_SIZE, LOG_LEVEL
from stockkeeper.events.outbox_utility import ALERT_CREATED, fetch_pending_events
from stockkeeper.notifications.dispatcher import NotificationDispatcher

log = logging.getLogger("outbox_poller")


async def dispatch_event(event: OutboxEvent, dispatcher: Optional[NotificationDispatcher] = None):
    """Routes an OutboxEvent to the handler for its event type."""
    log.info(f"Poller DISPATCHING: {event.event_type} (ID: {event.id.hex[:8]}...)")

    if event.event_type == ALERT_CREATED:
        await handle_alert_created(event.payload, event.id, dispatcher=dispatcher)
    else:
        log.warning(f"No handler found for event type: {event.event_type}")


async def poll_outbox_for_new_events(dispatcher: Optional[NotificationDispatcher] = None) -> int:
    """
    Queries the Outbox table for unpublished events and attempts to dispatch them.
    Returns the number of events published in this pass.
    """
    events = await fetch_pending_events(MAX_ATTEMPTS, BATCH_SIZE)
    published = 0

    for event in events:
        try:
            await dispatch_event(event, dispatcher)
            event.published = True
            await event.save(update_fields=['published'])
            published += 1
        except Exception:
            # Handler failed before marking the event processed; retry on a later pass
            event.attempts += 1
            await event.save(update_fields=['attempts'])
            log.exception(f"Dispatch of event {event.id} failed (attempt {event.attempts}/{MAX_ATTEMPTS}).")

    return published


async def run_outbox_poller(interval: float = POLLING_INTERVAL):
    """Polling loop. Runs until cancelled."""
    log.info("--- Outbox Poller Started ---")
    while True:
        try:
            await poll_outbox_for_new_events()
        except Exception as e:
            log.error(f"Poller encountered a critical DB error: {e}.")

        await asyncio.sleep(interval)


async def start_outbox_poller():
    """Standalone poller service entrypoint."""
    await init_db(generate_schemas=False)
    try:
        await run_outbox_poller()
    finally:
        await close_db()

if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    try:
        asyncio.run(start_outbox_poller())
    except KeyboardInterrupt:
        log.info("Poller service stopped.")
