import uuid
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from stockkeeper.models.user import UserRole


class UserCreateRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    email: str = Field(..., min_length=3, max_length=255)
    full_name: str = Field(..., min_length=1, max_length=255)
    role: UserRole = UserRole.USER
    department: str = "General"
    alert_email: Optional[str] = None
    enable_email_alerts: bool = True
    enable_daily_digest: bool = False


class NotificationSettingsRequest(BaseModel):
    alert_email: Optional[str] = None
    enable_email_alerts: Optional[bool] = None
    enable_daily_digest: Optional[bool] = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    email: str
    full_name: str
    role: UserRole
    enabled: bool
    department: str
    alert_email: Optional[str] = None
    effective_alert_email: str
    enable_email_alerts: bool
    enable_daily_digest: bool
