import logging
from typing import Iterable, List, Optional
from uuid import UUID
from tortoise.expressions import Q
from stockkeeper.core.exceptions import InventoryError, NotFoundError
from stockkeeper.models.user import User, UserRole

log = logging.getLogger("stockkeeper.users")

NOTIFICATION_FIELDS = ("alert_email", "enable_email_alerts", "enable_daily_digest")


def _unique_addresses(users: Iterable[User]) -> List[str]:
    seen = set()
    addresses = []
    for user in users:
        address = user.effective_alert_email
        key = address.lower()
        if key not in seen:
            seen.add(key)
            addresses.append(address)
    return addresses


async def resolve_alert_recipients(fallback: str) -> List[str]:
    """Enabled users with email alerts on, plus every OWNER; the fallback address if nobody qualifies."""
    users = await User.filter(
        Q(enable_email_alerts=True) | Q(role=UserRole.OWNER), enabled=True
    ).order_by("username")
    return _unique_addresses(users) or [fallback]


async def resolve_digest_recipients(fallback: str) -> List[str]:
    """Enabled users who opted into the digest, plus every OWNER; the fallback address if nobody qualifies."""
    users = await User.filter(
        Q(enable_daily_digest=True) | Q(role=UserRole.OWNER), enabled=True
    ).order_by("username")
    return _unique_addresses(users) or [fallback]


async def list_users() -> List[User]:
    return await User.all().order_by("username")


async def get_user(user_id: UUID) -> User:
    user = await User.get_or_none(id=user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


async def create_user(
    username: str,
    email: str,
    full_name: str,
    role: UserRole = UserRole.USER,
    department: str = "General",
    alert_email: Optional[str] = None,
    enable_email_alerts: bool = True,
    enable_daily_digest: bool = False,
) -> User:
    username = username.strip()
    email = email.strip()
    if await User.filter(Q(username=username) | Q(email=email)).exists():
        raise InventoryError(f"A user with username '{username}' or email '{email}' already exists")

    user = await User.create(
        username=username,
        email=email,
        full_name=full_name.strip(),
        role=role,
        department=department,
        alert_email=alert_email,
        enable_email_alerts=enable_email_alerts,
        enable_daily_digest=enable_daily_digest,
    )
    log.info(f"User {user.username} created with role {user.role.value}")
    return user


async def update_notification_settings(user_id: UUID, **changes) -> User:
    """Updates only the notification preference fields that were supplied."""
    user = await get_user(user_id)
    fields = [name for name in NOTIFICATION_FIELDS if name in changes]
    for name in fields:
        setattr(user, name, changes[name])
    if fields:
        await user.save(update_fields=fields + ["updated_at"])
    return user
