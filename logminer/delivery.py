"""Delivery and persistence collaborators.

The engine only produces text; these classes hand it to mail, chat or
the service log. Delivery failures are logged, never raised, so one bad
recipient cannot abort a scheduled run.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Iterable, Optional, Protocol, runtime_checkable

import httpx

from .models import AdapterError, Attachment

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    def send(
        self,
        subject: str,
        body: str,
        recipients: list[str],
        attachment: Optional[Attachment] = None,
    ) -> None: ...


@runtime_checkable
class RecordSink(Protocol):
    def save_all(self, errors: list[AdapterError]) -> None: ...


class LoggingNotifier:
    """Writes notifications to the service log."""

    def send(self, subject, body, recipients, attachment=None):
        logger.info("%s (to: %s)\n%s", subject, ", ".join(recipients) or "-", body)


class SmtpNotifier:
    """Sends one plain-text mail per recipient."""

    def __init__(self, host: str, port: int = 25, sender: str = "log-monitor@localhost", timeout: float = 30.0):
        self.host = host
        self.port = port
        self.sender = sender
        self.timeout = timeout

    def build_message(self, subject, body, recipient, attachment=None) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)
        if attachment is not None:
            maintype, _, subtype = attachment.mime_type.partition("/")
            message.add_attachment(
                attachment.content,
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )
        return message

    def send(self, subject, body, recipients, attachment=None):
        sent = 0
        for recipient in recipients:
            message = self.build_message(subject, body, recipient, attachment)
            try:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                    smtp.send_message(message)
                sent += 1
            except (smtplib.SMTPException, OSError):
                logger.exception("Failed to send email to %s", recipient)
        logger.info("Log monitor email sent to %d of %d recipient(s)", sent, len(recipients))


class WebhookNotifier:
    """Posts notifications to a chat webhook as JSON."""

    def __init__(self, url: str, timeout: float = 30.0, client: Optional[httpx.Client] = None):
        self.url = url
        self.timeout = timeout
        self._client = client

    def payload(self, subject, body, recipients, attachment=None) -> dict:
        data = {
            "text": f"*{subject}*\n```\n{body}\n```",
            "recipients": recipients,
        }
        if attachment is not None:
            data["attachment"] = {
                "filename": attachment.filename,
                "content": attachment.content.decode("utf-8", errors="replace"),
            }
        return data

    def send(self, subject, body, recipients, attachment=None):
        payload = self.payload(subject, body, recipients, attachment)
        try:
            if self._client is not None:
                response = self._client.post(self.url, json=payload)
            else:
                response = httpx.post(self.url, json=payload, timeout=self.timeout)
            if response.status_code >= 300:
                logger.error("Webhook returned %s: %s", response.status_code, response.text[:200])
        except httpx.HTTPError:
            logger.exception("Webhook delivery to %s failed", self.url)


class CompositeNotifier:
    """Fans one notification out to several notifiers."""

    def __init__(self, notifiers: Iterable[Notifier]):
        self.notifiers = list(notifiers)

    def send(self, subject, body, recipients, attachment=None):
        for notifier in self.notifiers:
            notifier.send(subject, body, recipients, attachment)


def build_notifier(settings) -> Notifier:
    """Pick delivery channels from configuration; the service log is the fallback."""
    notifiers: list = []
    if settings.smtp_host:
        notifiers.append(SmtpNotifier(settings.smtp_host, settings.smtp_port, settings.smtp_sender))
    if settings.webhook_url:
        notifiers.append(WebhookNotifier(settings.webhook_url))
    if not notifiers:
        return LoggingNotifier()
    if len(notifiers) == 1:
        return notifiers[0]
    return CompositeNotifier(notifiers)
