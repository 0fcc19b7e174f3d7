import logging
import smtplib
import time
from contextlib import contextmanager
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Protocol
from fastapi.concurrency import run_in_threadpool
from stockkeeper.core import config
from stockkeeper.core.exceptions import NotificationDeliveryError
from stockkeeper.notifications.templates import NotificationMessage

log = logging.getLogger("stockkeeper.notifications")


class NotificationChannel(Protocol):
    """Anything that can deliver a rendered message to one recipient. Raises NotificationDeliveryError on failure."""

    async def send(self, recipient: str, message: NotificationMessage) -> None:
        ...


class EmailChannel:
    """SMTP delivery. smtplib blocks, so each send runs in the threadpool."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: str = config.EMAIL_SENDER,
        use_ssl: bool = False,
        max_retries: int = 3,
        retry_delay: float = 3,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_ssl = use_ssl
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @contextmanager
    def _connection(self):
        server = None
        try:
            if self.use_ssl:
                server = smtplib.SMTP_SSL(self.smtp_host, self.smtp_port)
            else:
                server = smtplib.SMTP(self.smtp_host, self.smtp_port)
                server.starttls()
            if self.username:
                server.login(self.username, self.password or "")
            yield server
        finally:
            if server:
                try:
                    server.quit()
                except (smtplib.SMTPException, OSError) as e:
                    log.warning(f"Error closing SMTP connection: {e}")

    def _build(self, recipient: str, message: NotificationMessage) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = f"{config.COMPANY_NAME} <{self.sender}>"
        msg["To"] = recipient
        msg["Subject"] = message.subject
        msg.attach(MIMEText(message.text, "plain", "utf-8"))
        msg.attach(MIMEText(message.html, "html", "utf-8"))
        return msg

    def _send_blocking(self, recipient: str, message: NotificationMessage):
        mime = self._build(recipient, message)
        last_error = None
        for attempt in range(1, self.max_retries + 1):
            try:
                with self._connection() as server:
                    server.sendmail(self.sender, [recipient], mime.as_string())
                return
            except (smtplib.SMTPException, OSError) as e:
                last_error = e
                log.warning(f"SMTP attempt {attempt}/{self.max_retries} to {recipient} failed: {e}")
                if attempt < self.max_retries:
                    time.sleep(self.retry_delay)
        raise NotificationDeliveryError(recipient, str(last_error))

    async def send(self, recipient: str, message: NotificationMessage) -> None:
        await run_in_threadpool(self._send_blocking, recipient, message)
        log.info(f"Email '{message.subject}' sent to {recipient}")


class LogChannel:
    """Writes notifications to the log. Used when no SMTP server is configured."""

    async def send(self, recipient: str, message: NotificationMessage) -> None:
        log.info(f"NOTIFICATION to {recipient}: {message.subject}\n{message.text}")


def build_channel() -> NotificationChannel:
    if config.SMTP_HOST:
        return EmailChannel(
            smtp_host=config.SMTP_HOST,
            smtp_port=config.SMTP_PORT,
            username=config.SMTP_USERNAME,
            password=config.SMTP_PASSWORD,
            use_ssl=config.SMTP_USE_SSL,
        )
    log.warning("SMTP_HOST not set; notifications will only be logged.")
    return LogChannel()
