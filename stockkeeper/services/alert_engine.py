import logging
from datetime import datetime
from typing import Any, List, Optional
from stockkeeper.core.clock import Clock, as_utc, utcnow
from stockkeeper.core.config import AlertSettings, load_alert_settings
from stockkeeper.events.outbox_utility import ALERT_CREATED, create_outbox_event
from stockkeeper.models.alert import Alert, AlertType
from stockkeeper.models.item import Item

log = logging.getLogger("stockkeeper.alert_engine")


def build_alert_message(alert_type: AlertType, item: Item) -> str:
    threshold = item.safety_stock_threshold
    effective = item.effective_inventory
    percent = effective / threshold * 100 if threshold > 0 else 0.0
    label = alert_type.value.replace("_", " ").capitalize()
    return (
        f"{label} alert: {item.name} ({item.code}) has effective inventory of {effective} units "
        f"({percent:.1f}% of safety stock of {threshold} units); "
        f"on hand {item.current_inventory}, pending PO {item.pending_po}."
    )


class AlertEngine:
    """
    Safety-stock state machine. Per item there is either no open alert or one
    open alert of severity WARNING_STOCK / CRITICAL_STOCK.

    evaluate() must be awaited inside the transaction holding the item's row
    lock: the read of the open alert and any alert it creates or resolves then
    belong to the same transaction, so concurrent evaluations of one item
    cannot both open an alert.
    """

    def __init__(self, settings: Optional[AlertSettings] = None, clock: Clock = utcnow):
        self.settings = settings or AlertSettings()
        self.clock = clock

    def severity(self, effective: int, threshold: int) -> AlertType:
        if threshold > 0 and effective / threshold < self.settings.critical_ratio:
            return AlertType.CRITICAL_STOCK
        return AlertType.WARNING_STOCK

    def should_supersede(self, last_alert: Alert, effective: int, now: datetime) -> bool:
        """
        Compares the live effective inventory against the open alert's snapshot.
        Any of magnitude, severity change or staleness replaces the alert.
        """
        last_effective = last_alert.current_inventory + last_alert.pending_po
        last_threshold = last_alert.safety_stock_threshold
        if last_threshold <= 0:
            return True

        if abs(effective - last_effective) / last_threshold >= self.settings.significant_change_ratio:
            return True
        if self.severity(effective, last_threshold) != self.severity(last_effective, last_threshold):
            return True
        return now - as_utc(last_alert.created_at) > self.settings.refresh_after

    async def open_alerts(self, item_id, conn: Any = None) -> List[Alert]:
        """Unresolved alerts for the item, newest first."""
        return await Alert.filter(item_id=item_id, resolved=False).order_by("-created_at").using_db(conn)

    async def evaluate(self, item: Item, conn: Any = None) -> Optional[Alert]:
        """
        Re-evaluates the item after a ledger mutation. Returns the newly opened
        alert, or None when nothing was opened.
        """
        now = self.clock()
        effective = item.effective_inventory
        threshold = item.safety_stock_threshold
        existing = await self.open_alerts(item.id, conn)

        if effective >= threshold:
            if existing:
                await self._resolve_all(existing, now, conn)
                log.info(f"Stock recovered for {item.code} ({effective}/{threshold}); resolved {len(existing)} alert(s).")
            return None

        if existing:
            if not self.should_supersede(existing[0], effective, now):
                log.debug(f"Open alert for {item.code} still current ({effective}/{threshold}); no new alert.")
                return None
            await self._resolve_all(existing, now, conn)
            log.info(f"Superseding {len(existing)} open alert(s) for {item.code}.")

        return await self._open_alert(item, now, conn)

    async def _resolve_all(self, alerts: List[Alert], now: datetime, conn: Any):
        for alert in alerts:
            alert.resolve(now)
            await alert.save(update_fields=["resolved", "resolved_at"], using_db=conn)

    async def _open_alert(self, item: Item, now: datetime, conn: Any) -> Alert:
        alert_type = self.severity(item.effective_inventory, item.safety_stock_threshold)
        alert = await Alert.create(
            item=item,
            alert_type=alert_type,
            message=build_alert_message(alert_type, item),
            current_inventory=item.current_inventory,
            pending_po=item.pending_po,
            used_inventory=item.used_inventory,
            safety_stock_threshold=item.safety_stock_threshold,
            created_at=now,
            using_db=conn,
        )
        # Notification goes out after commit via the outbox poller
        await create_outbox_event(
            aggregate_type="alert",
            aggregate_id=alert.id,
            event_type=ALERT_CREATED,
            payload={
                "alert_id": str(alert.id),
                "item_id": str(item.id),
                "alert_type": alert_type.value,
            },
            conn=conn,
        )
        log.warning(f"{alert_type.value} alert opened for {item.code}: {alert.message}")
        return alert


_default_engine: Optional[AlertEngine] = None


def get_alert_engine() -> AlertEngine:
    """Process-wide engine built from environment configuration."""
    global _default_engine
    if _default_engine is None:
        _default_engine = AlertEngine(load_alert_settings())
    return _default_engine
