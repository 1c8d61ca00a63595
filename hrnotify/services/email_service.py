import asyncio
import logging
import re
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Any, Callable, Optional

from hrnotify.core.config import Settings
from hrnotify.models.enums import Channel

from .base import ChannelAdapter, InvalidAddressError, ProviderError, RetryPolicy, Sleep

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_TAG_RE = re.compile(r"<[^>]+>")


class EmailService(ChannelAdapter):
    channel = Channel.EMAIL
    name = "Email"

    def __init__(
        self,
        smtp_server: Optional[str],
        smtp_port: int = 587,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        use_tls: bool = True,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
        smtp_factory: Optional[Callable[..., Any]] = None,
    ):
        super().__init__(retry_policy=retry_policy, sleep=sleep)
        self.smtp_server = smtp_server
        self.smtp_port = int(smtp_port)
        self.smtp_username = smtp_username
        self.smtp_password = smtp_password
        self.from_email = from_email or smtp_username
        self.use_tls = use_tls
        self._smtp_factory = smtp_factory

        if not self.is_configured:
            logger.warning("[Email] SMTP_SERVER/FROM_EMAIL not configured; sends will fail with NOT_CONFIGURED")

    @classmethod
    def from_settings(cls, settings: Settings, max_retries: int = 0, base_delay: float = 1.0) -> "EmailService":
        return cls(
            smtp_server=settings.SMTP_SERVER,
            smtp_port=settings.SMTP_PORT,
            smtp_username=settings.SMTP_USERNAME,
            smtp_password=settings.SMTP_PASSWORD,
            from_email=settings.FROM_EMAIL,
            use_tls=settings.SMTP_USE_TLS,
            retry_policy=RetryPolicy(max_retries=max_retries, base_delay=base_delay),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_server and self.from_email)

    def normalize_address(self, address: str) -> str:
        address = address.strip()
        if not _EMAIL_RE.match(address):
            raise InvalidAddressError(f"{address!r} is not an email address")
        return address

    def _build_message(self, to_email: str, subject: Optional[str], body: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject or ""
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg["Message-ID"] = make_msgid()

        # Template bodies are HTML; send a tag-stripped plain text part alongside
        msg.attach(MIMEText(_TAG_RE.sub("", body), "plain"))
        msg.attach(MIMEText(body, "html"))
        return msg

    def _open_connection(self):
        if self._smtp_factory is not None:
            return self._smtp_factory(self.smtp_server, self.smtp_port)
        if self.smtp_port == 465:
            # SSL connection for port 465
            context = ssl.create_default_context()
            return smtplib.SMTP_SSL(self.smtp_server, self.smtp_port, context=context, timeout=30)
        return smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=30)

    def _send_sync(self, msg: MIMEMultipart) -> str:
        with self._open_connection() as server:
            if self.use_tls and self.smtp_port != 465:
                server.starttls(context=ssl.create_default_context())
            if self.smtp_username and self.smtp_password:
                server.login(self.smtp_username, self.smtp_password)
            server.send_message(msg)
        return msg["Message-ID"]

    async def _deliver(self, address: str, subject: Optional[str], body: str) -> str:
        msg = self._build_message(address, subject, body)
        try:
            return await asyncio.to_thread(self._send_sync, msg)
        except smtplib.SMTPAuthenticationError as e:
            raise ProviderError(f"SMTP authentication failed: {e}", code="SMTP_AUTH", retryable=False) from e
        except smtplib.SMTPRecipientsRefused as e:
            raise ProviderError(f"Recipient refused: {e}", code="SMTP_RECIPIENT_REFUSED", retryable=False) from e
        except (smtplib.SMTPException, OSError) as e:
            raise ProviderError(f"SMTP error: {e}", code="SMTP_ERROR", retryable=True) from e
