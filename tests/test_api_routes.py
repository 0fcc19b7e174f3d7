import pytest
from datetime import datetime, timezone
from types import SimpleNamespace
from fastapi.testclient import TestClient
from unittest.mock import patch, AsyncMock
from uuid import uuid4

from stockkeeper.core.exceptions import AlreadyArrivedError, InsufficientInventoryError, ItemInUseError, NotFoundError
from stockkeeper.main import app
from stockkeeper.models.alert import AlertType
from stockkeeper.models.user import UserRole
from stockkeeper.notifications.dispatcher import DeliveryResult

NOW = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def client():
    return TestClient(app)


def fake_item(**overrides):
    values = dict(
        id=uuid4(),
        code="SYR-05ML",
        name="Syringe 5 ml",
        description=None,
        current_inventory=40,
        used_inventory=10,
        pending_po=0,
        safety_stock_threshold=100,
        effective_inventory=40,
        available_quantity=40,
        needs_restock=True,
        barcode="0012345000024",
        qr_code_id=None,
        location="Shelf B",
        department="Clinical",
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def fake_purchase_order(item, **overrides):
    values = dict(
        id=uuid4(),
        item=item,
        item_id=item.id,
        quantity=200,
        order_date=NOW,
        arrival_date=None,
        tracking_number="1Z-0001",
        arrived=False,
        created_by="manager",
        updated_by=None,
        arrived_by=None,
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestItemRoutes:
    def test_create_item(self, client):
        """Test item creation returns 201 with computed fields"""
        with patch('stockkeeper.api.v1.items.inventory_service.create_item', new_callable=AsyncMock) as mock_create:
            mock_create.return_value = fake_item()

            response = client.post("/api/v1/items/", json={
                "code": "syr-05ml",
                "name": "Syringe 5 ml",
                "current_inventory": 40,
                "safety_stock_threshold": 100,
            })

            assert response.status_code == 201
            body = response.json()
            assert body["success"] is True
            assert body["data"]["needs_restock"] is True
            assert mock_create.await_args.kwargs["code"] == "syr-05ml"

    def test_create_item_validation(self, client):
        """Test negative threshold is rejected before reaching the service"""
        response = client.post("/api/v1/items/", json={"code": "X", "name": "X", "safety_stock_threshold": -1})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"

    def test_get_item_not_found(self, client):
        """Test domain NotFoundError maps to 404"""
        with patch('stockkeeper.api.v1.items.inventory_service.get_item', new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = NotFoundError("Item not found")

            response = client.get(f"/api/v1/items/{uuid4()}")

            assert response.status_code == 404
            assert response.json()["success"] is False
            assert response.json()["error"]["code"] == "not_found"

    def test_update_item_passes_only_supplied_fields(self, client):
        with patch('stockkeeper.api.v1.items.inventory_service.update_item', new_callable=AsyncMock) as mock_update:
            mock_update.return_value = fake_item(safety_stock_threshold=80)

            response = client.put(f"/api/v1/items/{uuid4()}", json={"safety_stock_threshold": 80})

            assert response.status_code == 200
            assert mock_update.await_args.kwargs == {"safety_stock_threshold": 80}

    def test_lookup_item(self, client):
        with patch('stockkeeper.api.v1.items.inventory_service.lookup_item', new_callable=AsyncMock) as mock_lookup:
            mock_lookup.return_value = fake_item()

            response = client.get("/api/v1/items/lookup/0012345000024")

            assert response.status_code == 200
            assert response.json()["data"]["code"] == "SYR-05ML"
            mock_lookup.assert_awaited_once_with("0012345000024")

    def test_adjust_inventory(self, client):
        with patch('stockkeeper.api.v1.items.inventory_service.adjust_inventory', new_callable=AsyncMock) as mock_adjust:
            mock_adjust.return_value = fake_item(current_inventory=12)
            item_id = uuid4()

            response = client.post(f"/api/v1/items/{item_id}/adjust", json={"counted_quantity": 12})

            assert response.status_code == 200
            mock_adjust.assert_awaited_once_with(item_id, 12)

    def test_unexpected_error_is_500(self, client):
        with patch('stockkeeper.api.v1.items.inventory_service.list_items', new_callable=AsyncMock) as mock_list:
            mock_list.side_effect = RuntimeError("connection reset")

            response = client.get("/api/v1/items/")

            assert response.status_code == 500
            assert response.json()["error"]["message"] == "Server failed to list items."

    def test_delete_item_with_usage_is_conflict(self, client):
        with patch('stockkeeper.api.v1.items.inventory_service.delete_item', new_callable=AsyncMock) as mock_delete:
            mock_delete.side_effect = ItemInUseError("Item SYR-05ML has recorded usage and cannot be deleted")

            response = client.delete(f"/api/v1/items/{uuid4()}")

            assert response.status_code == 409
            assert response.json()["error"]["code"] == "item_in_use"


class TestUsageRoutes:
    def test_record_usage_insufficient_inventory(self, client):
        """Test over-consumption maps to 409 with available and requested in the message"""
        with patch('stockkeeper.api.v1.usage.inventory_service.record_usage', new_callable=AsyncMock) as mock_record:
            mock_record.side_effect = InsufficientInventoryError(5, 10, "SYR-05ML")

            response = client.post("/api/v1/usage/record", json={
                "barcode": "0012345000024",
                "user_name": "alice",
                "quantity_used": 10,
            })

            assert response.status_code == 409
            error = response.json()["error"]
            assert error["code"] == "insufficient_inventory"
            assert "Available: 5, Requested: 10" in error["message"]

    def test_record_usage_requires_positive_quantity(self, client):
        response = client.post("/api/v1/usage/record", json={
            "barcode": "0012345000024",
            "user_name": "alice",
            "quantity_used": 0,
        })
        assert response.status_code == 422


class TestPurchaseOrderRoutes:
    def test_create_purchase_order(self, client):
        item = fake_item()
        with patch(
            'stockkeeper.api.v1.purchase_orders.purchase_order_service.create_purchase_order',
            new_callable=AsyncMock,
        ) as mock_create:
            mock_create.return_value = fake_purchase_order(item)

            response = client.post(f"/api/v1/items/{item.id}/purchase-orders", json={"quantity": 200})

            assert response.status_code == 201
            assert response.json()["data"]["quantity"] == 200
            assert response.json()["data"]["arrived"] is False

    def test_list_by_status(self, client):
        item = fake_item()
        with patch(
            'stockkeeper.api.v1.purchase_orders.purchase_order_service.list_purchase_orders',
            new_callable=AsyncMock,
        ) as mock_list:
            mock_list.return_value = [fake_purchase_order(item)]

            response = client.get("/api/v1/purchase-orders?status=pending")

            assert response.status_code == 200
            assert response.json()["data"][0]["item_name"] == "Syringe 5 ml"
            mock_list.assert_awaited_once_with(arrived=False)

    def test_arrive_twice_is_conflict(self, client):
        with patch(
            'stockkeeper.api.v1.purchase_orders.purchase_order_service.mark_purchase_order_arrived',
            new_callable=AsyncMock,
        ) as mock_arrive:
            mock_arrive.side_effect = AlreadyArrivedError("Purchase Order already arrived")

            response = client.post(f"/api/v1/purchase-orders/{uuid4()}/arrive")

            assert response.status_code == 409
            assert response.json()["error"]["code"] == "already_arrived"

    def test_pending_quantity(self, client):
        with patch(
            'stockkeeper.api.v1.purchase_orders.purchase_order_service.get_pending_quantity',
            new_callable=AsyncMock,
        ) as mock_pending:
            mock_pending.return_value = 35

            response = client.get(f"/api/v1/items/{uuid4()}/purchase-orders/pending-quantity")

            assert response.json()["data"]["pending_quantity"] == 35


class TestAlertRoutes:
    def test_list_active_alerts(self, client):
        item = fake_item()
        alert = SimpleNamespace(
            id=uuid4(),
            item=item,
            item_id=item.id,
            alert_type=AlertType.WARNING_STOCK,
            message="Warning stock alert",
            current_inventory=40,
            pending_po=5,
            used_inventory=10,
            safety_stock_threshold=100,
            resolved=False,
            read=False,
            ignored=False,
            created_at=NOW,
            resolved_at=None,
            read_at=None,
            ignored_at=None,
        )
        with patch('stockkeeper.api.v1.alerts.alert_service.list_alerts', new_callable=AsyncMock) as mock_list:
            mock_list.return_value = [alert]

            response = client.get("/api/v1/alerts/?status=active")

            assert response.status_code == 200
            data = response.json()["data"][0]
            assert data["alert_type"] == "WARNING_STOCK"
            assert data["effective_inventory"] == 45
            assert data["item"]["code"] == "SYR-05ML"

    def test_unknown_status_is_rejected(self, client):
        response = client.get("/api/v1/alerts/?status=sleeping")
        assert response.status_code == 422

    def test_count(self, client):
        with patch('stockkeeper.api.v1.alerts.alert_service.count_alerts', new_callable=AsyncMock) as mock_count:
            mock_count.return_value = {"active_alerts": 3, "unread_alerts": 1}

            response = client.get("/api/v1/alerts/count")

            assert response.json()["data"] == {"active_alerts": 3, "unread_alerts": 1}

    def test_send_digest(self, client):
        with patch('stockkeeper.api.v1.alerts.alert_service.send_alert_digest', new_callable=AsyncMock) as mock_digest:
            mock_digest.return_value = [
                DeliveryResult("owner@example.com", True),
                DeliveryResult("manager@example.com", False, "timeout"),
            ]

            response = client.post("/api/v1/alerts/digest?period=weekly")

            assert response.json()["data"] == {"recipients": 2, "delivered": 1, "failed": 1}
            mock_digest.assert_awaited_once_with(period="weekly")


class TestUserRoutes:
    def test_update_notification_settings(self, client):
        user = SimpleNamespace(
            id=uuid4(),
            username="alice",
            email="alice@example.com",
            full_name="Alice",
            role=UserRole.USER,
            enabled=True,
            department="General",
            alert_email=None,
            effective_alert_email="alice@example.com",
            enable_email_alerts=False,
            enable_daily_digest=False,
        )
        with patch(
            'stockkeeper.api.v1.users.user_service.update_notification_settings',
            new_callable=AsyncMock,
        ) as mock_update:
            mock_update.return_value = user

            response = client.patch(f"/api/v1/users/{user.id}/notifications", json={"enable_email_alerts": False})

            assert response.status_code == 200
            assert response.json()["data"]["enable_email_alerts"] is False
            assert mock_update.await_args.kwargs == {"enable_email_alerts": False}


class TestStatsRoutes:
    def test_usage_summary_by_item(self, client):
        item_id = uuid4()
        with patch(
            'stockkeeper.api.v1.usage.stats_service.usage_summary_by_item',
            new_callable=AsyncMock,
        ) as mock_summary:
            mock_summary.return_value = [{
                "item_id": item_id,
                "item_code": "SYR-05ML",
                "item_name": "Syringe 5 ml",
                "total_quantity_used": 15,
                "usage_count": 2,
            }]

            response = client.get("/api/v1/usage/summary/items?department=Clinical")

            assert response.status_code == 200
            assert response.json()["data"][0]["item_id"] == str(item_id)
            assert response.json()["data"][0]["total_quantity_used"] == 15
            assert mock_summary.await_args.kwargs["department"] == "Clinical"

    def test_usage_summary_by_user(self, client):
        with patch(
            'stockkeeper.api.v1.usage.stats_service.usage_summary_by_user',
            new_callable=AsyncMock,
        ) as mock_summary:
            mock_summary.return_value = [{"user_name": "bob", "total_quantity_used": 11, "usage_count": 2}]

            response = client.get("/api/v1/usage/summary/users")

            assert response.json()["data"] == [{"user_name": "bob", "total_quantity_used": 11, "usage_count": 2}]

    def test_quick_stats(self, client):
        with patch('stockkeeper.api.v1.stats.stats_service.quick_stats', new_callable=AsyncMock) as mock_stats:
            mock_stats.return_value = {
                "department": None,
                "total_items": 2,
                "total_quantity": 45,
                "average_quantity": 22.5,
                "items_below_safety_stock": 1,
                "critical_stock_items": 0,
                "active_alerts": 1,
                "daily_usage": [{"date": NOW.date(), "total_quantity_used": 6}],
                "top_usage_items": [],
                "low_stock_items": [fake_item(pending_po=5, effective_inventory=45)],
            }

            response = client.get("/api/v1/stats/quick")

            assert response.status_code == 200
            data = response.json()["data"]
            assert data["items_below_safety_stock"] == 1
            assert data["daily_usage"] == [{"date": "2024-03-04", "total_quantity_used": 6}]
            assert data["low_stock_items"][0]["effective_inventory"] == 45

    def test_top_usage_limit_is_bounded(self, client):
        response = client.get("/api/v1/stats/top-usage?limit=0")
        assert response.status_code == 422
