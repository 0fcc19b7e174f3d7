import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional
from stockkeeper.notifications.channels import NotificationChannel, build_channel
from stockkeeper.notifications.templates import NotificationMessage

log = logging.getLogger("stockkeeper.notifications")


@dataclass
class DeliveryResult:
    recipient: str
    delivered: bool
    error: Optional[str] = None


class NotificationDispatcher:
    """
    Best-effort fan-out. Each recipient is tried independently and every
    failure is logged and swallowed: a business operation never fails
    because a notification could not be delivered.
    """

    def __init__(self, channel: NotificationChannel):
        self.channel = channel

    async def dispatch(self, recipients: Iterable[str], message: NotificationMessage) -> List[DeliveryResult]:
        results = []
        for recipient in recipients:
            try:
                await self.channel.send(recipient, message)
                results.append(DeliveryResult(recipient, True))
            except Exception as e:
                log.error(f"Failed to deliver '{message.subject}' to {recipient}: {e}")
                results.append(DeliveryResult(recipient, False, str(e)))

        failed = sum(1 for r in results if not r.delivered)
        if failed:
            log.warning(f"'{message.subject}': {failed}/{len(results)} deliveries failed.")
        return results


_default_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    global _default_dispatcher
    if _default_dispatcher is None:
        _default_dispatcher = NotificationDispatcher(build_channel())
    return _default_dispatcher
