import logging
from typing import Any, Dict, List, Optional
from uuid import UUID
from tortoise.exceptions import IntegrityError
from stockkeeper.core.config import load_alert_settings
from stockkeeper.events.outbox_utility import ALERT_CREATED
from stockkeeper.models.alert import Alert
from stockkeeper.models.item import Item
from stockkeeper.models.processed_event import ProcessedEvent
from stockkeeper.notifications.dispatcher import DeliveryResult, NotificationDispatcher, get_dispatcher
from stockkeeper.notifications.templates import render_alert_notification
from stockkeeper.services.user_service import resolve_alert_recipients

log = logging.getLogger("alert_consumer")


async def handle_alert_created(
    event_payload: Dict[str, Any],
    event_id: UUID,
    dispatcher: Optional[NotificationDispatcher] = None,
    fallback_email: Optional[str] = None,
) -> List[DeliveryResult]:
    """
    Consumer logic for 'inventory.alert.created.v1'. Runs after the alert's
    transaction committed; sends the alert to every recipient exactly once.
    The event is claimed in ProcessedEvent before anything is sent, so a
    failed claim or a second poller never produces a duplicate mail.
    """
    alert_id = UUID(event_payload.get("alert_id"))
    event_id_str = str(event_id)
    dispatcher = dispatcher or get_dispatcher()
    fallback_email = fallback_email or load_alert_settings().fallback_email

    # Idempotency Check
    if await ProcessedEvent.filter(event_id=event_id_str).exists():
        log.info(f"Idempotency: Event {event_id_str} already processed.")
        return []

    try:
        await ProcessedEvent.create(event_id=event_id_str, event_type=ALERT_CREATED)
    except IntegrityError:
        log.info(f"Idempotency: Event {event_id_str} claimed by another consumer.")
        return []

    results = []
    alert = await Alert.get_or_none(id=alert_id)
    item = await Item.get_or_none(id=alert.item_id) if alert else None
    if not alert or not item:
        log.error(f"Alert {alert_id} or its item no longer exists; nothing to notify.")
    else:
        recipients = await resolve_alert_recipients(fallback_email)
        log.info(f"Notifying {len(recipients)} recipient(s) of {alert.alert_type.value} alert for {item.code}")
        results = await dispatcher.dispatch(recipients, render_alert_notification(alert, item))

    return results
