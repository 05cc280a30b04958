"""Transactional email transport backed by the SendGrid REST API."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Email, Mail

from app.config import Settings, get_settings
from app.domain.entities import Channel
from app.domain.errors import ChannelDeliveryError

logger = logging.getLogger(__name__)

_RECIPIENT_ERROR_FIELDS = {"personalizations.0.to", "personalizations.0.to.0.email", "to"}


@dataclass(frozen=True)
class EmailMessage:
    """Rendered email ready to hand to a transport."""

    recipient: str
    subject: str
    text: str
    html: str


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    parsed = _parse_sendgrid_body(body)
    if parsed is None:
        return None
    if isinstance(parsed, str):
        return parsed

    if isinstance(parsed, dict):
        messages: list[str] = []
        for item in parsed.get("errors") or []:
            if not isinstance(item, dict):
                continue
            message = item.get("message")
            help_link = item.get("help")
            if message and help_link:
                messages.append(f"{message} (help: {help_link})")
            elif message:
                messages.append(str(message))
        if messages:
            return "; ".join(messages)

    try:
        return json.dumps(parsed)
    except (TypeError, ValueError):
        return None


def _parse_sendgrid_body(body: Any) -> Any:
    if body in (None, "", b""):
        return None
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            return json.loads(body)
        except json.JSONDecodeError:
            return body
    return body


def _is_recipient_error(body: Any) -> bool:
    parsed = _parse_sendgrid_body(body)
    if not isinstance(parsed, dict):
        return False
    for item in parsed.get("errors") or []:
        if not isinstance(item, dict):
            continue
        field = str(item.get("field") or "").lower()
        message = str(item.get("message") or "").lower()
        if field in _RECIPIENT_ERROR_FIELDS or "recipient" in message:
            return True
    return False


def translate_sendgrid_error(status_code: int | None, body: Any) -> ChannelDeliveryError:
    """Map a failed SendGrid call onto :class:`ChannelDeliveryError`."""

    details = _extract_sendgrid_error_details(body) or "SendGrid request failed"
    if status_code == 400 and _is_recipient_error(body):
        return ChannelDeliveryError(
            Channel.EMAIL.value, "invalid-recipient", details, is_permanent=True
        )
    if status_code == 429:
        return ChannelDeliveryError(Channel.EMAIL.value, "rate-limited", details)
    if status_code is not None:
        return ChannelDeliveryError(Channel.EMAIL.value, f"http-{status_code}", details)
    return ChannelDeliveryError(Channel.EMAIL.value, "transport-error", details)


class SendGridEmailTransport:
    """Send :class:`EmailMessage` objects through SendGrid."""

    def __init__(self, api_key: str, sender: str, *, sender_name: str | None = None) -> None:
        self._api_key = api_key
        self._sender = sender
        self._sender_name = sender_name
        self._client: SendGridAPIClient | None = None

    def _get_client(self) -> SendGridAPIClient:
        if self._client is None:
            self._client = SendGridAPIClient(self._api_key)
        return self._client

    def transmit(self, message: EmailMessage) -> str | None:
        """Send ``message`` and return the SendGrid message id when available."""

        mail = Mail(
            from_email=Email(self._sender, self._sender_name),
            to_emails=message.recipient,
            subject=message.subject,
            plain_text_content=message.text,
            html_content=message.html,
        )

        try:
            response = self._get_client().send(mail)
        except Exception as exc:
            status_code = getattr(exc, "status_code", None)
            error = translate_sendgrid_error(status_code, getattr(exc, "body", None))
            logger.error("SendGrid API request failed: %s", error)
            raise error from exc

        status_code = getattr(response, "status_code", None)
        if not isinstance(status_code, int) or not 200 <= status_code < 300:
            error = translate_sendgrid_error(status_code, getattr(response, "body", None))
            logger.error("SendGrid API responded with status %s: %s", status_code, error)
            raise error

        headers = getattr(response, "headers", None) or {}
        return headers.get("X-Message-Id")


def build_email_transport(settings: Settings | None = None) -> SendGridEmailTransport | None:
    """Return the configured transport, or ``None`` when email is disabled."""

    settings = settings or get_settings()
    if not settings.email_enabled:
        return None
    return SendGridEmailTransport(
        settings.sendgrid_api_key or "",
        settings.sendgrid_sender or "",
        sender_name=settings.email_from_name,
    )


__all__ = [
    "EmailMessage",
    "SendGridEmailTransport",
    "build_email_transport",
    "translate_sendgrid_error",
]
