from tortoise import fields, models
import uuid


class Usage(models.Model):
    """Immutable record of units taken out of stock."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    item = fields.ForeignKeyField("models.Item", related_name="usages", on_delete=fields.RESTRICT)
    user_name = fields.CharField(max_length=128)
    quantity_used = fields.IntField()
    used_at = fields.DatetimeField()
    notes = fields.CharField(max_length=500, null=True)
    department = fields.CharField(max_length=64, null=True)
    barcode = fields.CharField(max_length=128) # Lookup key the caller scanned

    class Meta:
        table = "item_usage"
        indexes = [
            ("item_id",),
            ("user_name",),
            ("department",),
            ("used_at",),
        ]
