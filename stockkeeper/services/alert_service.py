import logging
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID
from stockkeeper.core.clock import Clock, utcnow
from stockkeeper.core.config import load_alert_settings
from stockkeeper.core.exceptions import NotFoundError
from stockkeeper.models.alert import Alert
from stockkeeper.notifications.dispatcher import DeliveryResult, NotificationDispatcher, get_dispatcher
from stockkeeper.notifications.templates import render_alert_digest
from stockkeeper.services.user_service import resolve_digest_recipients

log = logging.getLogger("stockkeeper.alerts")


class AlertStatus(str, Enum):
    ALL = "all"
    ACTIVE = "active"      # unresolved and not ignored
    UNREAD = "unread"      # active and not read
    IGNORED = "ignored"
    RESOLVED = "resolved"


async def list_alerts(status: AlertStatus = AlertStatus.ALL, item_id: Optional[UUID] = None) -> List[Alert]:
    query = Alert.all()
    ordering = "-created_at"
    if status == AlertStatus.ACTIVE:
        query = query.filter(resolved=False, ignored=False)
    elif status == AlertStatus.UNREAD:
        query = query.filter(resolved=False, ignored=False, read=False)
    elif status == AlertStatus.IGNORED:
        query = query.filter(ignored=True)
        ordering = "-ignored_at"
    elif status == AlertStatus.RESOLVED:
        query = query.filter(resolved=True)
        ordering = "-resolved_at"
    if item_id:
        query = query.filter(item_id=item_id)
    return await query.order_by(ordering).prefetch_related("item")


async def count_alerts() -> Dict[str, int]:
    return {
        "active_alerts": await Alert.filter(resolved=False, ignored=False).count(),
        "unread_alerts": await Alert.filter(resolved=False, ignored=False, read=False).count(),
    }


async def _get_alert(alert_id: UUID) -> Alert:
    alert = await Alert.get_or_none(id=alert_id).prefetch_related("item")
    if not alert:
        raise NotFoundError(f"Alert {alert_id} not found")
    return alert


async def mark_alert_read(alert_id: UUID, clock: Clock = utcnow) -> Alert:
    alert = await _get_alert(alert_id)
    if not alert.read:
        alert.mark_read(clock())
        await alert.save(update_fields=["read", "read_at"])
    return alert


async def resolve_alert(alert_id: UUID, clock: Clock = utcnow) -> Alert:
    """Manual resolution. The engine will open a fresh alert on the next mutation if stock is still low."""
    alert = await _get_alert(alert_id)
    if not alert.resolved:
        alert.resolve(clock())
        await alert.save(update_fields=["resolved", "resolved_at"])
    return alert


async def ignore_alert(alert_id: UUID, clock: Clock = utcnow) -> Alert:
    alert = await _get_alert(alert_id)
    if not alert.ignored:
        alert.ignore(clock())
        await alert.save(update_fields=["ignored", "ignored_at"])
    return alert


async def send_alert_digest(
    period: str = "daily",
    dispatcher: Optional[NotificationDispatcher] = None,
    fallback_email: Optional[str] = None,
) -> List[DeliveryResult]:
    """
    Summary sweep, independent of the per-item state machine: counts unresolved
    alerts and mails the digest audience. Reads a snapshot count, takes no locks.
    """
    dispatcher = dispatcher or get_dispatcher()
    fallback_email = fallback_email or load_alert_settings().fallback_email

    open_count = await Alert.filter(resolved=False).count()
    recipients = await resolve_digest_recipients(fallback_email)
    results = await dispatcher.dispatch(recipients, render_alert_digest(open_count, period))
    log.info(f"{period.capitalize()} digest ({open_count} open alerts) sent to {len(recipients)} recipient(s).")
    return results
