"""Alert delivery channels: webhook, email and SMS.

Each channel sends a single ``AlertPayload`` and reports success as a bool.
Transport failures are logged here; the alert engine additionally isolates
any exception a channel lets escape.
"""

import asyncio
import hashlib
import hmac
import json
import logging
import smtplib
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.message import EmailMessage

import httpx

from agentboard.config import Settings
from agentboard.schemas.alert import AlertChannel, AlertPayload

logger = logging.getLogger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
TWILIO_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
SMS_MAX_CHARS = 1500


def sign_payload(payload: dict, secret: str) -> str:
    """Create HMAC-SHA256 signature for a webhook payload."""
    body = json.dumps(payload, sort_keys=True, default=str)
    return hmac.new(
        secret.encode("utf-8"),
        body.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


class NotificationChannel(ABC):
    channel: AlertChannel

    def __init__(self, timeout: float = 10) -> None:
        self.timeout = timeout

    @property
    @abstractmethod
    def configured(self) -> bool:
        """Whether enough settings are present to attempt a delivery."""

    @abstractmethod
    async def send(self, payload: AlertPayload) -> bool:
        """Deliver the payload. Returns True on success."""

    async def _post(self, url: str, description: str, **kwargs) -> bool:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException:
            logger.error("[alerts] %s to %s timed out", description, url)
            return False
        except httpx.RequestError as exc:
            logger.error("[alerts] %s to %s failed: %s", description, url, exc)
            return False

        if response.status_code >= 400:
            logger.warning(
                "[alerts] %s to %s returned %d: %s",
                description,
                url,
                response.status_code,
                response.text[:200],
            )
            return False
        return True


class WebhookChannel(NotificationChannel):
    """POSTs a JSON event, signed with HMAC-SHA256 when a secret is set."""

    channel = AlertChannel.WEBHOOK

    def __init__(self, url: str, secret: str = "", timeout: float = 10) -> None:
        super().__init__(timeout)
        self.url = url
        self.secret = secret

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def build_body(self, payload: AlertPayload) -> dict:
        return {
            "event": payload.event.value,
            "title": payload.title,
            "body": payload.body,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": "agentboard",
        }

    async def send(self, payload: AlertPayload) -> bool:
        if not self.configured:
            logger.info("[alerts] Webhook URL not configured, skipping")
            return False

        body = self.build_body(payload)
        headers = {
            "Content-Type": "application/json",
            "X-Agentboard-Event": payload.event.value,
            "X-Agentboard-Delivery": str(uuid.uuid4()),
        }
        if self.secret:
            headers["X-Agentboard-Signature"] = sign_payload(body, self.secret)

        sent = await self._post(self.url, "Webhook", json=body, headers=headers)
        if sent:
            logger.info("[alerts] Webhook sent to %s", self.url)
        return sent


class EmailChannel(NotificationChannel):
    """Sends mail through the SendGrid HTTP API or a plain SMTP server."""

    channel = AlertChannel.EMAIL

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings.http_timeout_seconds)
        self.provider = settings.email_provider
        self.to = settings.email_to
        self.sender = settings.email_from
        self.sendgrid_api_key = settings.sendgrid_api_key
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_password = settings.smtp_password

    @property
    def configured(self) -> bool:
        if self.provider == "none" or not self.to:
            return False
        if self.provider == "sendgrid":
            return bool(self.sendgrid_api_key)
        return bool(self.smtp_host)

    async def send(self, payload: AlertPayload) -> bool:
        if not self.configured:
            logger.info("[alerts] Email not configured, skipping")
            return False

        if self.provider == "sendgrid":
            sent = await self._post(
                SENDGRID_URL,
                "SendGrid email",
                json={
                    "personalizations": [{"to": [{"email": self.to}]}],
                    "from": {"email": self.sender},
                    "subject": payload.title,
                    "content": [{"type": "text/plain", "value": payload.body}],
                },
                headers={"Authorization": f"Bearer {self.sendgrid_api_key}"},
            )
        else:
            sent = await asyncio.to_thread(self._send_smtp, payload)

        if sent:
            logger.info("[alerts] Email sent to %s via %s", self.to, self.provider)
        return sent

    def _send_smtp(self, payload: AlertPayload) -> bool:
        message = EmailMessage()
        message["Subject"] = payload.title
        message["From"] = self.sender
        message["To"] = self.to
        message.set_content(payload.body)
        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as smtp:
                smtp.starttls()
                if self.smtp_user:
                    smtp.login(self.smtp_user, self.smtp_password)
                smtp.send_message(message)
        except (OSError, smtplib.SMTPException) as exc:
            logger.error("[alerts] SMTP delivery via %s failed: %s", self.smtp_host, exc)
            return False
        return True


class SmsChannel(NotificationChannel):
    """Sends a text message through the Twilio REST API."""

    channel = AlertChannel.SMS

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings.http_timeout_seconds)
        self.provider = settings.sms_provider
        self.to = settings.sms_to
        self.account_sid = settings.twilio_account_sid
        self.auth_token = settings.twilio_auth_token
        self.sender = settings.twilio_from

    @property
    def configured(self) -> bool:
        return self.provider == "twilio" and all(
            (self.account_sid, self.auth_token, self.sender, self.to)
        )

    async def send(self, payload: AlertPayload) -> bool:
        if not self.configured:
            logger.info("[alerts] SMS not configured, skipping")
            return False

        text = f"{payload.title}\n{payload.body}"[:SMS_MAX_CHARS]
        sent = await self._post(
            TWILIO_URL.format(sid=self.account_sid),
            "Twilio SMS",
            data={"To": self.to, "From": self.sender, "Body": text},
            auth=(self.account_sid, self.auth_token),
        )
        if sent:
            logger.info("[alerts] SMS sent to %s via Twilio", self.to)
        return sent


def build_channels(settings: Settings) -> dict[AlertChannel, NotificationChannel]:
    """Instantiate every channel from settings, configured or not."""
    return {
        AlertChannel.EMAIL: EmailChannel(settings),
        AlertChannel.SMS: SmsChannel(settings),
        AlertChannel.WEBHOOK: WebhookChannel(
            settings.webhook_url,
            settings.webhook_secret,
            timeout=settings.http_timeout_seconds,
        ),
    }
