from typing import Dict, Any, List, Optional
from uuid import UUID
from stockkeeper.models.outbox import OutboxEvent

# Event types
ALERT_CREATED = "inventory.alert.created.v1"


async def create_outbox_event(
    aggregate_type: str,
    aggregate_id: Optional[UUID],
    event_type: str,
    payload: Dict[str, Any],
    conn: Any = None
) -> OutboxEvent:
    """
    Creates a new Outbox event record using the provided database connection (transaction).

    Passing 'conn' ensures the event is created atomically with the business data:
    if the surrounding transaction rolls back, the event disappears with it.
    """
    return await OutboxEvent.create(
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        event_type=event_type,
        payload=payload,
        published=False,
        attempts=0,
        using_db=conn
    )


async def fetch_pending_events(max_attempts: int, batch_size: int) -> List[OutboxEvent]:
    """Oldest unpublished events that have not exhausted their retries."""
    return await (
        OutboxEvent.filter(published=False, attempts__lt=max_attempts)
        .order_by("created_at")
        .limit(batch_size)
    )
