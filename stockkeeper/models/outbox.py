from tortoise import fields, models
import uuid


class OutboxEvent(models.Model):
    """
    Written in the same transaction as the alert it describes, so a notification
    is only ever sent for an alert that was actually committed.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    aggregate_type = fields.CharField(max_length=64) # e.g., 'alert'
    aggregate_id = fields.UUIDField(null=True)
    event_type = fields.CharField(max_length=128) # e.g., 'inventory.alert.created.v1'
    payload = fields.JSONField()
    published = fields.BooleanField(default=False)
    attempts = fields.IntField(default=0)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "outbox_events"
        indexes = [
            ("published", "attempts"),
        ]
