from tortoise import fields, models
import uuid


class Item(models.Model):
    """
    Ledger row for a stocked item. current_inventory is already net of usage;
    pending_po is a cached sum of un-arrived purchase order quantities.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    code = fields.CharField(max_length=64, unique=True) # Stored uppercase
    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    current_inventory = fields.IntField(default=0)
    used_inventory = fields.IntField(default=0)
    pending_po = fields.IntField(default=0)
    safety_stock_threshold = fields.IntField(default=0)
    barcode = fields.CharField(max_length=128, null=True, unique=True)
    qr_code_id = fields.CharField(max_length=128, null=True, unique=True)
    location = fields.CharField(max_length=255, null=True)
    department = fields.CharField(max_length=64, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "items"
        indexes = [
            ("department",),
        ]

    @property
    def effective_inventory(self) -> int:
        # Usage is not subtracted again: current_inventory already reflects it
        return self.current_inventory + self.pending_po

    @property
    def available_quantity(self) -> int:
        return max(0, self.current_inventory + self.pending_po)

    @property
    def needs_restock(self) -> bool:
        return self.effective_inventory < self.safety_stock_threshold

    def __str__(self):
        return f"{self.name} ({self.code})"
