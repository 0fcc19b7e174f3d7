from tortoise import fields, models
import uuid


class PurchaseOrder(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    item = fields.ForeignKeyField("models.Item", related_name="purchase_orders", on_delete=fields.CASCADE)
    quantity = fields.IntField()
    order_date = fields.DatetimeField()
    arrival_date = fields.DatetimeField(null=True)
    tracking_number = fields.CharField(max_length=128, null=True)
    arrived = fields.BooleanField(default=False) # One-way: False -> True
    created_by = fields.CharField(max_length=128, null=True)
    updated_by = fields.CharField(max_length=128, null=True)
    arrived_by = fields.CharField(max_length=128, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "purchase_orders"
        indexes = [
            ("item_id",),
            ("arrived",),
            ("item_id", "arrived"),  # Composite: pending quantity per item
        ]
