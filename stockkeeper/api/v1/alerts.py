import logging
from fastapi import APIRouter, HTTPException, Query
from stockkeeper.core.exceptions import InventoryError
from stockkeeper.schemas.alert import AlertCountResponse, AlertResponse, DigestResponse
from stockkeeper.schemas.response import SuccessResponse
from stockkeeper.services import alert_service
from stockkeeper.services.alert_service import AlertStatus
from typing import Optional
from uuid import UUID

router = APIRouter()
log = logging.getLogger("uvicorn")


def _alert_data(alert) -> dict:
    return AlertResponse.from_model(alert, alert.item).model_dump(mode="json")


@router.get("/", response_model=SuccessResponse)
async def list_alerts_endpoint(status: AlertStatus = AlertStatus.ALL, item_id: Optional[UUID] = None):
    try:
        alerts = await alert_service.list_alerts(status=status, item_id=item_id)
        return SuccessResponse(data=[_alert_data(alert) for alert in alerts])
    except Exception as e:
        log.error(f"Error listing alerts: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list alerts.")


@router.get("/count", response_model=SuccessResponse)
async def count_alerts_endpoint():
    try:
        counts = await alert_service.count_alerts()
        return SuccessResponse(data=AlertCountResponse(**counts).model_dump())
    except Exception as e:
        log.error(f"Error counting alerts: {e}")
        raise HTTPException(status_code=500, detail="Server failed to count alerts.")


@router.post("/digest", response_model=SuccessResponse)
async def send_digest_endpoint(period: str = Query("daily", pattern="^(daily|weekly)$")):
    """Sends the open-alert digest right away instead of waiting for the scheduled run."""
    try:
        results = await alert_service.send_alert_digest(period=period)
        delivered = sum(1 for result in results if result.delivered)
        data = DigestResponse(recipients=len(results), delivered=delivered, failed=len(results) - delivered)
        return SuccessResponse(data=data.model_dump())
    except Exception as e:
        log.error(f"Error sending {period} digest: {e}")
        raise HTTPException(status_code=500, detail="Server failed to send digest.")


@router.post("/{alert_id}/read", response_model=SuccessResponse)
async def mark_read_endpoint(alert_id: UUID):
    try:
        alert = await alert_service.mark_alert_read(alert_id)
        return SuccessResponse(data=_alert_data(alert))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error marking alert {alert_id} read: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update alert.")


@router.post("/{alert_id}/resolve", response_model=SuccessResponse)
async def resolve_endpoint(alert_id: UUID):
    try:
        alert = await alert_service.resolve_alert(alert_id)
        log.info(f"Alert {alert_id} resolved manually.")
        return SuccessResponse(data=_alert_data(alert))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error resolving alert {alert_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update alert.")


@router.post("/{alert_id}/ignore", response_model=SuccessResponse)
async def ignore_endpoint(alert_id: UUID):
    try:
        alert = await alert_service.ignore_alert(alert_id)
        return SuccessResponse(data=_alert_data(alert))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error ignoring alert {alert_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update alert.")
