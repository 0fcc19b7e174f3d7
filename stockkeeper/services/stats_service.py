import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from tortoise.functions import Count, Sum
from stockkeeper.core.clock import Clock, as_utc, utcnow
from stockkeeper.models.alert import Alert, AlertType
from stockkeeper.models.item import Item
from stockkeeper.models.usage import Usage
from stockkeeper.services.alert_engine import AlertEngine, get_alert_engine

log = logging.getLogger("stockkeeper.stats")


def _usage_query(department: Optional[str] = None, start: Optional[datetime] = None, end: Optional[datetime] = None):
    query = Usage.all()
    if department:
        query = query.filter(department=department)
    if start:
        query = query.filter(used_at__gte=start)
    if end:
        query = query.filter(used_at__lte=end)
    return query


async def usage_summary_by_item(
    department: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Total units used and number of usage records per item, heaviest first."""
    rows = await (
        _usage_query(department, start, end)
        .annotate(total_quantity_used=Sum("quantity_used"), usage_count=Count("id"))
        .group_by("item_id")
        .values("item_id", "total_quantity_used", "usage_count")
    )
    items = {str(item.id): item for item in await Item.filter(id__in=[row["item_id"] for row in rows])}

    summary = []
    for row in rows:
        item = items.get(str(row["item_id"]))
        if item is None:
            continue
        summary.append({
            "item_id": item.id,
            "item_code": item.code,
            "item_name": item.name,
            "total_quantity_used": int(row["total_quantity_used"] or 0),
            "usage_count": int(row["usage_count"]),
        })
    summary.sort(key=lambda entry: (-entry["total_quantity_used"], entry["item_code"]))
    return summary[:limit] if limit else summary


async def usage_summary_by_user(
    department: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    rows = await (
        _usage_query(department, start, end)
        .annotate(total_quantity_used=Sum("quantity_used"), usage_count=Count("id"))
        .group_by("user_name")
        .values("user_name", "total_quantity_used", "usage_count")
    )
    summary = [
        {
            "user_name": row["user_name"],
            "total_quantity_used": int(row["total_quantity_used"] or 0),
            "usage_count": int(row["usage_count"]),
        }
        for row in rows
    ]
    summary.sort(key=lambda entry: (-entry["total_quantity_used"], entry["user_name"]))
    return summary


async def top_usage_items(limit: int = 5, department: Optional[str] = None, start: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """The most used items with their share (in whole percent) of the listed usage."""
    top = await usage_summary_by_item(department=department, start=start, limit=limit)
    total = sum(entry["total_quantity_used"] for entry in top)
    for entry in top:
        entry["percentage"] = round(entry["total_quantity_used"] * 100 / total) if total else 0
    return top


async def low_stock_items(department: Optional[str] = None) -> List[Item]:
    """Items whose effective inventory is under the threshold, lowest coverage first."""
    query = Item.all()
    if department:
        query = query.filter(department=department)
    items = [item for item in await query if item.needs_restock]
    items.sort(key=lambda item: (
        item.effective_inventory / item.safety_stock_threshold if item.safety_stock_threshold else 0,
        item.code,
    ))
    return items


async def daily_usage(days: int = 7, department: Optional[str] = None, clock: Clock = utcnow) -> List[Dict[str, Any]]:
    """Units used per calendar day (UTC) over the last `days` days, oldest first, zero-filled."""
    first_day = as_utc(clock()).date() - timedelta(days=days - 1)
    start = datetime(first_day.year, first_day.month, first_day.day, tzinfo=timezone.utc)

    totals = OrderedDict((first_day + timedelta(days=offset), 0) for offset in range(days))
    for used_at, quantity in await _usage_query(department, start=start).values_list("used_at", "quantity_used"):
        day = as_utc(used_at).date()
        if day in totals:
            totals[day] += quantity
    return [{"date": day, "total_quantity_used": total} for day, total in totals.items()]


async def quick_stats(
    department: Optional[str] = None,
    engine: Optional[AlertEngine] = None,
    clock: Optional[Clock] = None,
) -> Dict[str, Any]:
    """Dashboard numbers for all items, or for one department."""
    engine = engine or get_alert_engine()
    clock = clock or engine.clock

    query = Item.all()
    if department:
        query = query.filter(department=department)
    items = await query
    low = [item for item in items if item.needs_restock]
    critical = [
        item for item in low
        if engine.severity(item.effective_inventory, item.safety_stock_threshold) == AlertType.CRITICAL_STOCK
    ]

    alerts = Alert.filter(resolved=False, ignored=False)
    if department:
        alerts = alerts.filter(item__department=department)

    total_quantity = sum(item.current_inventory for item in items)
    stats = {
        "department": department,
        "total_items": len(items),
        "total_quantity": total_quantity,
        "average_quantity": round(total_quantity / len(items), 2) if items else 0.0,
        "items_below_safety_stock": len(low),
        "critical_stock_items": len(critical),
        "active_alerts": await alerts.count(),
        "daily_usage": await daily_usage(7, department, clock=clock),
        "top_usage_items": await top_usage_items(5, department),
        "low_stock_items": await low_stock_items(department),
    }
    log.info(
        f"Quick stats for {department or 'all departments'}: {stats['total_items']} items, "
        f"{stats['items_below_safety_stock']} below safety stock"
    )
    return stats
