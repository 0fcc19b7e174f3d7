from datetime import datetime, timedelta, timezone

from stockkeeper.core.exceptions import NotificationDeliveryError


class FixedClock:
    """Deterministic clock for the alert engine; advance() moves it forward."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class RecordingChannel:
    def __init__(self):
        self.sent = []

    async def send(self, recipient, message):
        self.sent.append((recipient, message))


class FailingChannel(RecordingChannel):
    def __init__(self, failing):
        super().__init__()
        self.failing = set(failing)

    async def send(self, recipient, message):
        if recipient in self.failing:
            raise NotificationDeliveryError(recipient, "mailbox unavailable")
        await super().send(recipient, message)
