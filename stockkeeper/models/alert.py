from datetime import datetime
from enum import Enum
from tortoise import fields, models
import uuid


class AlertType(str, Enum):
    CRITICAL_STOCK = "CRITICAL_STOCK"
    WARNING_STOCK = "WARNING_STOCK"


class Alert(models.Model):
    """
    Safety-stock alert. The inventory fields are a snapshot taken when the alert
    was opened, not live values. A resolved alert is never reopened; changed
    status is signalled by a new row.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    item = fields.ForeignKeyField("models.Item", related_name="alerts", on_delete=fields.CASCADE)
    alert_type = fields.CharEnumField(AlertType, max_length=32)
    message = fields.TextField()
    current_inventory = fields.IntField()
    pending_po = fields.IntField()
    used_inventory = fields.IntField()
    safety_stock_threshold = fields.IntField()
    resolved = fields.BooleanField(default=False)
    read = fields.BooleanField(default=False)
    ignored = fields.BooleanField(default=False)
    created_at = fields.DatetimeField() # Set from the engine clock
    resolved_at = fields.DatetimeField(null=True)
    read_at = fields.DatetimeField(null=True)
    ignored_at = fields.DatetimeField(null=True)

    class Meta:
        table = "alerts"
        indexes = [
            ("item_id", "resolved"),  # Open alert lookup during evaluation
            ("created_at",),
        ]

    @property
    def effective_inventory(self) -> int:
        return self.current_inventory + self.pending_po

    def resolve(self, at: datetime):
        self.resolved = True
        self.resolved_at = at

    def mark_read(self, at: datetime):
        self.read = True
        self.read_at = at

    def ignore(self, at: datetime):
        self.ignored = True
        self.ignored_at = at
