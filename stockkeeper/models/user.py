from enum import Enum
from tortoise import fields, models
import uuid


class UserRole(str, Enum):
    OWNER = "OWNER"  # Always receives alerts and digests
    ADMIN = "ADMIN"
    USER = "USER"


class User(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    username = fields.CharField(max_length=64, unique=True)
    email = fields.CharField(max_length=255, unique=True)
    full_name = fields.CharField(max_length=255)
    role = fields.CharEnumField(UserRole, default=UserRole.USER)
    enabled = fields.BooleanField(default=True)
    alert_email = fields.CharField(max_length=255, null=True)
    enable_email_alerts = fields.BooleanField(default=True)
    enable_daily_digest = fields.BooleanField(default=False)
    department = fields.CharField(max_length=64, default="General")
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "users"

    @property
    def effective_alert_email(self) -> str:
        if self.alert_email and self.alert_email.strip():
            return self.alert_email.strip()
        return self.email
