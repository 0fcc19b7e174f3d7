from dataclasses import dataclass
from html import escape
from stockkeeper.core.config import COMPANY_NAME
from stockkeeper.models.alert import Alert, AlertType
from stockkeeper.models.item import Item


@dataclass(frozen=True)
class NotificationMessage:
    subject: str
    text: str
    html: str


def render_alert_notification(alert: Alert, item: Item) -> NotificationMessage:
    """Renders the alert snapshot. Item supplies name/code/location only."""
    critical = alert.alert_type == AlertType.CRITICAL_STOCK
    prefix = "URGENT" if critical else "Warning"
    color = "#ff4444" if critical else "#ff9800"
    effective = alert.current_inventory + alert.pending_po
    subject = f"[{prefix}] Inventory Alert: {item.name} - {COMPANY_NAME}"

    rows = [
        ("Item", f"{item.name} ({item.code})"),
        ("Severity", alert.alert_type.value),
        ("Current inventory", alert.current_inventory),
        ("Pending purchase orders", alert.pending_po),
        ("Effective inventory", effective),
        ("Safety stock threshold", alert.safety_stock_threshold),
        ("Used to date", alert.used_inventory),
    ]
    if item.location:
        rows.append(("Location", item.location))

    text = "\n".join([alert.message, ""] + [f"{label}: {value}" for label, value in rows])
    table = "".join(
        f"<tr><td><strong>{escape(label)}</strong></td><td>{escape(str(value))}</td></tr>"
        for label, value in rows
    )
    html = (
        f"<html><body>"
        f"<h2 style=\"color: {color};\">{escape(prefix)}: low stock for {escape(item.name)}</h2>"
        f"<p>{escape(alert.message)}</p>"
        f"<table>{table}</table>"
        f"<p style=\"color: #888;\">Sent by {escape(COMPANY_NAME)}</p>"
        f"</body></html>"
    )
    return NotificationMessage(subject=subject, text=text, html=html)


def render_alert_digest(open_alert_count: int, period: str = "daily") -> NotificationMessage:
    title = f"{period.capitalize()} Inventory Alert Summary"
    plural = "" if open_alert_count == 1 else "s"
    if open_alert_count:
        summary = f"There {'is' if open_alert_count == 1 else 'are'} {open_alert_count} open stock alert{plural}."
    else:
        summary = "There are no open stock alerts. All items are above their safety stock."
    text = f"{title}\n\n{summary}"
    html = (
        f"<html><body><h2>{escape(title)}</h2>"
        f"<p style=\"font-size: 18px;\">{open_alert_count} Open Alert{plural}</p>"
        f"<p>{escape(summary)}</p></body></html>"
    )
    return NotificationMessage(subject=f"{title} - {COMPANY_NAME}", text=text, html=html)
